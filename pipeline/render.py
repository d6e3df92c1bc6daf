"""Render driver: HTML string to PDF bytes in headless Chromium.

Sequence per job: launch (fallback chain) → new page at the job's viewport →
set content → print media → wait for fonts → wait for every image (bounded
per image) → ``page.pdf`` → embedded-font check.

PDF page geometry is decided here from the format catalog:

  physical interior   spread size in mm, zero margins, no engine footer
  digital / text-only caller format, orientation and margins, page-number footer
  cover               spread size in inches, zero margins, no engine footer
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

from playwright.sync_api import sync_playwright

from models.book_format import BookGeometry, Viewport
from models.options import RenderOptions
from pipeline.browser import LaunchStrategy, launched_browser
from utils.pdf_fonts import validate_pdf_fonts

logger = logging.getLogger(__name__)

NAVIGATION_TIMEOUT_MS = 120_000
IMAGE_TIMEOUT_MS = 15_000
TEXT_ONLY_IMAGE_TIMEOUT_MS = 8_000

FOOTER_TEMPLATE = (
    '<div style="font-size:9pt;width:100%;text-align:center;color:#5a6573;font-family:PFTFrank;">'
    '<span class="pageNumber"></span></div>'
)

_FONTS_READY_JS = "() => document.fonts.ready.then(() => document.fonts.size)"

# Resolves once every <img> has loaded, errored or waited ``timeoutMs``; returns the image count
_IMAGES_SETTLED_JS = """
(timeoutMs) => Promise.all(Array.from(document.images).map((img) => new Promise((resolve) => {
  if (img.complete) return resolve();
  const timer = setTimeout(resolve, timeoutMs);
  img.onload = img.onerror = () => { clearTimeout(timer); resolve(); };
}))).then((settled) => settled.length)
"""


@dataclass(frozen=True)
class RenderJob:
    """Everything the driver needs besides the HTML."""
    label: str
    viewport: Viewport
    pdf_options: dict[str, Any]
    wait_until: Literal["domcontentloaded", "networkidle"] = "domcontentloaded"
    image_timeout_ms: int = IMAGE_TIMEOUT_MS
    extra_args: tuple[str, ...] = field(default_factory=tuple)


def render_pdf(html: str, job: RenderJob, strategies: Sequence[LaunchStrategy]) -> bytes:
    """Render ``html`` to PDF bytes.

    Raises BrowserLaunchError when no launch strategy works; any page error
    propagates after the browser is closed.
    """
    with sync_playwright() as playwright:
        with launched_browser(playwright.chromium, strategies, job.label, job.extra_args) as browser:
            page = browser.new_page(
                viewport={"width": job.viewport.width, "height": job.viewport.height},
                device_scale_factor=job.viewport.device_scale_factor,
            )
            page.set_default_navigation_timeout(NAVIGATION_TIMEOUT_MS)
            page.set_content(html, wait_until=job.wait_until)
            page.emulate_media(media="print")
            page.evaluate(_FONTS_READY_JS)
            images = page.evaluate(_IMAGES_SETTLED_JS, job.image_timeout_ms)
            logger.debug("%s: %s images settled", job.label, images)
            pdf = page.pdf(**job.pdf_options)

    logger.info("Rendered %s: %d bytes", job.label, len(pdf))
    validate_pdf_fonts(pdf, job.label)
    return pdf


# ---------------------------------------------------------------------------
# PDF options
# ---------------------------------------------------------------------------

def _base_pdf_options() -> dict[str, Any]:
    return {"print_background": True, "prefer_css_page_size": True, "scale": 1.0}


def physical_pdf_options(geometry: BookGeometry) -> dict[str, Any]:
    return {
        **_base_pdf_options(),
        "width": f"{geometry.spread_width_mm:g}mm",
        "height": f"{geometry.spread_height_mm:g}mm",
        "margin": {"top": "0mm", "right": "0mm", "bottom": "0mm", "left": "0mm"},
        "display_header_footer": False,
    }


def paged_pdf_options(options: RenderOptions) -> dict[str, Any]:
    """Caller-sized pages with an engine page-number footer."""
    return {
        **_base_pdf_options(),
        "format": options.format,
        "landscape": options.landscape,
        "margin": options.margin.model_dump(),
        "display_header_footer": True,
        "header_template": "<div></div>",
        "footer_template": FOOTER_TEMPLATE,
    }


def cover_pdf_options(geometry: BookGeometry) -> dict[str, Any]:
    width, height = geometry.spread_size_inches()
    return {
        **_base_pdf_options(),
        "width": width,
        "height": height,
        "margin": {"top": "0in", "right": "0in", "bottom": "0in", "left": "0in"},
        "display_header_footer": False,
    }
