"""Post-render check that the browser embedded font programs in the PDF."""
import logging
import re
import zlib

logger = logging.getLogger(__name__)


def embedded_fonts(pdf: bytes) -> tuple[int, list[str]]:
    """Return (font program count, subset font names) found in ``pdf``.

    Chromium packs most object dictionaries into FlateDecode object streams,
    so every stream is inflated before searching.
    """
    all_decoded: list[bytes] = [pdf]  # also search raw (uncompressed objects)
    for m in re.finditer(rb"stream[\r\n]+(.*?)[\r\n]+endstream", pdf, re.DOTALL):
        try:
            all_decoded.append(zlib.decompress(m.group(1)))
        except zlib.error:
            continue  # image or font payload, not a deflated dictionary

    combined = b"\n".join(all_decoded)
    font_file_refs = len(re.findall(rb"/FontFile[23]?\b", combined))
    subset_names = [
        n.decode("latin-1")
        for n in re.findall(rb"/FontName\s*/([A-Z]{6}\+[^\s/\]>]+)", combined)
    ]
    return font_file_refs, subset_names


def validate_pdf_fonts(pdf: bytes, label: str) -> bool:
    """Log whether fonts are embedded in a rendered PDF. Never raises.

    Returns True when at least one embedded font program was found.
    """
    font_file_refs, subset_names = embedded_fonts(pdf)
    if font_file_refs == 0 and not subset_names:
        logger.warning(
            "PDF font validation FAILED for %s: no embedded font programs found. "
            "Text may fall back to system fonts in the print shop's RIP.",
            label,
        )
        return False
    logger.info(
        "PDF font validation OK for %s: %d font program(s) embedded, subsets: %s",
        label,
        font_file_refs,
        subset_names if subset_names else ["(none detected, may be in raw stream)"],
    )
    return True
