import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.middleware import RequestLoggingMiddleware
from models.options import RenderRequest
from pipeline.service import BookPdfService, ClientInputError
from settings import Settings

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@lru_cache
def get_settings() -> Settings:
    return Settings()


@lru_cache
def get_service() -> BookPdfService:
    return BookPdfService(get_settings())


app = FastAPI(title="Magic Book PDF Service", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected %s body: %d validation error(s)", request.url.path, len(exc.errors()))
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.get("/health")
def health() -> dict:
    return {"ok": True, "service": get_settings().service_name}


@app.post("/api/pdf/generate")
def generate_pdf(body: RenderRequest, service: BookPdfService = Depends(get_service)) -> Response:
    return _render(lambda: service.render_illustrated_book(body), "Failed to generate PDF")


@app.post("/api/pdf/generate-text-only")
def generate_text_only_pdf(body: RenderRequest, service: BookPdfService = Depends(get_service)) -> Response:
    return _render(lambda: service.render_text_only_book(body), "Failed to generate text-only PDF")


@app.post("/api/pdf/generate-cover")
def generate_cover_pdf(body: RenderRequest, service: BookPdfService = Depends(get_service)) -> Response:
    return _render(lambda: service.render_cover(body), "Failed to generate cover PDF")


def _render(produce, failure_message: str) -> Response:
    try:
        pdf = produce()
    except ClientInputError as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except Exception as exc:
        logger.exception("%s", failure_message)
        return JSONResponse(status_code=500, content={"error": failure_message, "details": str(exc)})
    return Response(content=pdf, media_type="application/pdf", headers=NO_CACHE_HEADERS)
