"""Diagnostic report of how heavy an assembled document's assets are.

Enabled with ``BOOKPDF_LOG_ASSET_WEIGHTS``. Remote sizes come from a HEAD
request, falling back to a ranged GET when the server omits Content-Length.
"""
import logging
import re

import httpx

from utils.images import data_uri_size_bytes

logger = logging.getLogger(__name__)

_SRC_ATTR = re.compile(r"""src=["']([^"']+)["']""")
_CSS_URL = re.compile(r"url\(([^)]+)\)")
_REQUEST_TIMEOUT = 10.0
_RANGE_PROBE = "bytes=0-1048575"
_REPORT_LIMIT = 20


def extract_asset_urls(html: str) -> tuple[list[str], list[str]]:
    """Return (remote URLs, data URIs) referenced by src attributes and CSS url()."""
    remote: dict[str, None] = {}
    inline: list[str] = []
    candidates = _SRC_ATTR.findall(html) + [u.strip().strip("\"'") for u in _CSS_URL.findall(html)]
    for url in candidates:
        if not url:
            continue
        if url.startswith("data:"):
            inline.append(url)
        else:
            remote[url] = None
    return list(remote), inline


def remote_size_bytes(client: httpx.Client, url: str) -> int:
    try:
        head = client.head(url)
        length = head.headers.get("content-length")
        if length:
            return int(length)
    except httpx.HTTPError as exc:
        logger.debug("HEAD %s failed: %s", url, exc)
    try:
        resp = client.get(url, headers={"range": _RANGE_PROBE})
        length = resp.headers.get("content-length")
        return int(length) if length else len(resp.content)
    except httpx.HTTPError as exc:
        logger.debug("Ranged GET %s failed: %s", url, exc)
    return 0


def log_asset_weights(label: str, html: str, client: httpx.Client | None = None) -> int:
    """Log the largest referenced assets and the total. Returns the total in bytes."""
    urls, data_uris = extract_asset_urls(html)
    owns_client = client is None
    client = client or httpx.Client(timeout=_REQUEST_TIMEOUT, follow_redirects=True)
    try:
        remote = [(url, remote_size_bytes(client, url)) for url in urls]
    finally:
        if owns_client:
            client.close()
    inline = [(_abbreviate(uri), data_uri_size_bytes(uri)) for uri in data_uris]
    total = sum(size for _, size in remote) + sum(size for _, size in inline)

    logger.info("Asset weights for %s:", label)
    for url, size in sorted(remote, key=lambda r: r[1], reverse=True)[:_REPORT_LIMIT]:
        logger.info("  %s -> %.2fMB", url, size / 1024 / 1024)
    if inline:
        logger.info("Inlined data URLs:")
        for url, size in sorted(inline, key=lambda r: r[1], reverse=True)[:_REPORT_LIMIT]:
            logger.info("  %s -> %.2fMB", url, size / 1024 / 1024)
    logger.info("Total referenced assets ~ %.2fMB", total / 1024 / 1024)
    return total


def _abbreviate(data_uri: str) -> str:
    return data_uri[:80] + ("..." if len(data_uri) > 80 else "")
