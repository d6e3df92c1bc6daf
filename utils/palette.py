"""Cover gradient colors.

The color-selection service is not deployed alongside the PDF service; this
stand-in returns a fixed monochromatic pair so covers always get a backdrop.
"""
from typing import Callable

PaletteSelector = Callable[[str | None], tuple[str, str]]

_DEFAULT_PALETTE = ("#0ea5e9", "#38bdf8")


def select_monochromatic_palette(image_url: str | None = None) -> tuple[str, str]:
    """Return (start, end) colors for the cover gradient."""
    return _DEFAULT_PALETTE
