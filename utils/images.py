"""Image source helpers: CDN delivery rewriting and data URIs."""
import re
from typing import NamedTuple

_CLOUDINARY_HOST = re.compile(r"res\.cloudinary\.com/")
_CLOUDINARY_UPLOAD = re.compile(r"/upload/")

DEFAULT_MIME_TYPE = "image/png"


class Delivery(NamedTuple):
    width: int
    quality: int
    fetch_format: str = "auto"


PRINT_DELIVERY = Delivery(width=2400, quality=90)
EMAIL_PAGE_DELIVERY = Delivery(width=600, quality=40)
EMAIL_COVER_DELIVERY = Delivery(width=800, quality=40)


def optimize_image_url(url: str | None, delivery: Delivery = PRINT_DELIVERY) -> str:
    """Ask the image CDN for a resized, recompressed rendition of ``url``.

    Only Cloudinary URLs are rewritten; data URIs and other hosts pass
    through unchanged.
    """
    if not url:
        return ""
    if url.startswith("data:"):
        return url
    if _CLOUDINARY_HOST.search(url):
        transform = f"/upload/f_{delivery.fetch_format},q_{delivery.quality},w_{delivery.width}/"
        return _CLOUDINARY_UPLOAD.sub(transform, url, count=1)
    return url


def to_data_uri(base64_data: str, mime_type: str | None = None) -> str:
    return f"data:{mime_type or DEFAULT_MIME_TYPE};base64,{base64_data}"


def data_uri_size_bytes(data_uri: str) -> int:
    """Decoded size of a base64 data URI, estimated from its payload length."""
    comma = data_uri.find(",")
    if comma == -1:
        return 0
    return (len(data_uri) - comma - 1) * 3 // 4
