#!/usr/bin/env python3
"""Run the book PDF HTTP service.

Usage:
    python run_server.py                      # host/port from settings (BOOKPDF_HOST / BOOKPDF_PORT)
    python run_server.py --port 9000          # override the port
    python run_server.py --reload             # auto-reload on code changes (development)
"""
import argparse
import logging
import sys
from pathlib import Path

import uvicorn

sys.path.insert(0, str(Path(__file__).resolve().parent))

from settings import Settings

logger = logging.getLogger("run_server")


def main() -> None:
    settings = Settings()

    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default=settings.host, help="Interface to bind (default: %(default)s)")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on (default: %(default)s)")
    parser.add_argument("--reload", action="store_true", help="Restart the server when source files change")
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )
    logger.info("=== %s on %s:%d (%s) ===", settings.service_name, args.host, args.port, settings.environment)
    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload, log_config=None)


if __name__ == "__main__":
    main()
