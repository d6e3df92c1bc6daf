"""Tests for the service facade: validation, per-variant defaults, job construction."""
from unittest.mock import MagicMock, patch

import pytest

from models.book_format import FormatCatalog
from models.options import RenderRequest
from models.story import HARDCOVER_LABEL, SOFTCOVER_LABEL
from pipeline.service import (
    BookPdfService,
    ClientInputError,
    InvalidStoryError,
    MissingFieldsError,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _story(book_type: str | None = None) -> dict:
    return {
        "title": "הספר של [שם הילד]",
        "bookType": book_type,
        "pages": [{"text": f"עמוד {i}", "imageUrl": f"https://x/{i}.png"} for i in range(3)],
        "coverImage": {"url": "https://x/cover.png"},
    }


def _request(**fields) -> RenderRequest:
    body = {"story": _story(), "childName": "Noa", "childAge": 5, "selectedGender": "girl"}
    body.update(fields)
    return RenderRequest.model_validate({k: v for k, v in body.items() if v is not None})


@pytest.fixture
def renderer() -> MagicMock:
    return MagicMock(return_value=b"%PDF-1.7 fake")


@pytest.fixture
def service(settings, assets, renderer) -> BookPdfService:
    return BookPdfService(settings, assets=assets, formats=FormatCatalog(), renderer=renderer, strategies=[])


def _job(renderer: MagicMock):
    html, job, strategies = renderer.call_args.args
    return html, job


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidation:
    @pytest.mark.parametrize("missing", ["story", "childName", "selectedGender"])
    def test_illustrated_requires_fields(self, service, renderer, missing):
        with pytest.raises(MissingFieldsError, match="Missing required fields: story, childName, selectedGender"):
            service.render_illustrated_book(_request(**{missing: None}))
        renderer.assert_not_called()

    def test_illustrated_accepts_selected_story(self, service, renderer):
        request = RenderRequest.model_validate({"selectedStory": _story(), "childName": "Noa", "selectedGender": "boy"})
        assert service.render_illustrated_book(request) == b"%PDF-1.7 fake"

    def test_text_only_requires_story_not_selected_story(self, service):
        request = RenderRequest.model_validate({"selectedStory": _story(), "childName": "Noa", "selectedGender": "boy"})
        with pytest.raises(MissingFieldsError):
            service.render_text_only_book(request)

    def test_cover_does_not_need_gender(self, service, renderer):
        request = RenderRequest.model_validate({"story": _story(), "childName": "Noa"})
        assert service.render_cover(request) == b"%PDF-1.7 fake"

    def test_cover_required_fields_message(self, service):
        with pytest.raises(MissingFieldsError, match="Missing required fields: story, childName$"):
            service.render_cover(RenderRequest(story=_story()))

    def test_invalid_story_is_client_error(self, service, renderer):
        request = _request(story={"pages": "not a list"})
        with pytest.raises(InvalidStoryError):
            service.render_illustrated_book(request)
        renderer.assert_not_called()

    def test_invalid_options_is_client_error(self, service):
        with pytest.raises(ClientInputError):
            service.render_illustrated_book(_request(options={"orientation": "sideways"}))

    def test_null_options_use_defaults(self, service, renderer):
        body = {"story": _story(), "childName": "Noa", "selectedGender": "girl", "options": None}
        service.render_illustrated_book(RenderRequest.model_validate(body))
        _, job = _job(renderer)
        assert job.pdf_options["margin"]["top"] == "20mm"

    def test_null_image_slots_render(self, service, renderer):
        story = {**_story(), "imageState": {"cover": {"images": None}, "pages": {"0": {"images": None}}}}
        assert service.render_illustrated_book(_request(story=story)) == b"%PDF-1.7 fake"
        html, _ = _job(renderer)
        assert "https://x/0.png" in html

    def test_unknown_paper_format_is_client_error(self, service, renderer):
        with pytest.raises(InvalidStoryError):
            service.render_text_only_book(_request(options={"format": "B7"}))
        renderer.assert_not_called()

    def test_errors_are_value_errors(self):
        assert issubclass(ClientInputError, ValueError)
        assert issubclass(MissingFieldsError, ClientInputError)


# ---------------------------------------------------------------------------
# Illustrated book
# ---------------------------------------------------------------------------

class TestIllustrated:
    def test_digital_uses_default_a4_20mm_with_footer(self, service, renderer):
        service.render_illustrated_book(_request())
        html, job = _job(renderer)
        assert job.label == "generate-pdf"
        assert job.pdf_options["format"] == "A4"
        assert job.pdf_options["landscape"] is False
        assert job.pdf_options["margin"]["top"] == "20mm"
        assert job.pdf_options["display_header_footer"] is True
        assert job.wait_until == "domcontentloaded"
        assert job.image_timeout_ms == 15000
        assert "Noa" in html

    def test_caller_options_win(self, service, renderer):
        service.render_illustrated_book(_request(options={"format": "Letter", "margin": {"top": "1in"}}))
        html, job = _job(renderer)
        assert job.pdf_options["format"] == "Letter"
        assert job.pdf_options["margin"]["top"] == "1in"
        assert "@page{size:215.9mm 279.4mm;margin:1in 0mm 0mm 0mm;}" in html

    def test_physical_uses_spread_size(self, service, renderer):
        service.render_illustrated_book(_request(story=_story(HARDCOVER_LABEL)))
        _, job = _job(renderer)
        assert job.pdf_options["width"] == "485mm"
        assert job.pdf_options["height"] == "250mm"
        assert job.pdf_options["display_header_footer"] is False
        assert "format" not in job.pdf_options

    def test_email_viewport(self, service, renderer):
        service.render_illustrated_book(_request(options={"optimizeForEmail": True}))
        _, job = _job(renderer)
        assert (job.viewport.width, job.viewport.height) == (1000, 1400)

    def test_print_viewport(self, service, renderer):
        service.render_illustrated_book(_request())
        _, job = _job(renderer)
        assert (job.viewport.width, job.viewport.height, job.viewport.device_scale_factor) == (1200, 1600, 5)

    def test_asset_weights_logged_when_enabled(self, settings, assets, renderer):
        settings.log_asset_weights = True
        service = BookPdfService(settings, assets=assets, formats=FormatCatalog(), renderer=renderer, strategies=[])
        with patch("pipeline.service.log_asset_weights") as log_weights:
            service.render_illustrated_book(_request())
        log_weights.assert_called_once()
        assert log_weights.call_args.args[0] == "generate-pdf"

    def test_asset_weights_off_by_default(self, service):
        with patch("pipeline.service.log_asset_weights") as log_weights:
            service.render_illustrated_book(_request())
        log_weights.assert_not_called()


# ---------------------------------------------------------------------------
# Text-only and cover
# ---------------------------------------------------------------------------

class TestTextOnly:
    def test_defaults_and_waits(self, service, renderer):
        service.render_text_only_book(_request())
        html, job = _job(renderer)
        assert job.label == "generate-text-only"
        assert job.pdf_options["margin"] == {"top": "5mm", "right": "5mm", "bottom": "5mm", "left": "5mm"}
        assert job.pdf_options["display_header_footer"] is True
        assert job.wait_until == "networkidle"
        assert job.image_timeout_ms == 8000
        assert "variant-text-only" in html

    def test_gendered_pages_resolved(self, service, renderer):
        story = {"title": "T", "pages": {"male": [{"text": "he"}], "female": [{"text": "she"}]}}
        service.render_text_only_book(_request(story=story))
        html, _ = _job(renderer)
        assert "she" in html
        assert ">he<" not in html


class TestCover:
    def test_hardcover_cover_size(self, service, renderer):
        service.render_cover(_request(story=_story(HARDCOVER_LABEL)))
        html, job = _job(renderer)
        assert job.label == "generate-cover"
        assert job.pdf_options["width"] == "19.0945in"
        assert job.pdf_options["height"] == "9.8425in"
        assert (job.viewport.width, job.viewport.height) == (1200, 800)
        assert "bg-tint" in html

    def test_softcover_cover_size(self, service, renderer):
        service.render_cover(_request(story=_story(SOFTCOVER_LABEL)))
        _, job = _job(renderer)
        assert job.pdf_options["width"] == "17.9134in"

    def test_custom_palette(self, settings, assets, renderer):
        service = BookPdfService(
            settings, assets=assets, formats=FormatCatalog(), renderer=renderer, strategies=[],
            palette=lambda url: ("#123456", "#654321"),
        )
        service.render_cover(_request())
        html, _ = _job(renderer)
        assert "linear-gradient(90deg, #654321, #123456)" in html


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestConstruction:
    def test_formats_loaded_from_yaml(self, settings, assets_dir):
        (assets_dir / "formats.yaml").write_text("softcover:\n  trim_mm: 200\n", encoding="utf-8")
        service = BookPdfService(settings, strategies=[])
        assert service.formats.softcover.trim_mm == 200.0

    def test_default_strategies(self, settings):
        service = BookPdfService(settings)
        assert [s.name for s in service.strategies] == ["system-chromium", "headless-shell", "bundled-chromium"]
