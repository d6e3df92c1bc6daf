"""Book format catalog: typed print geometry and browser viewport presets.

Loaded once per service instance and shared by the assembler (CSS sizing) and
the render driver (PDF page size). Values can be overridden from formats.yaml
in the assets directory; every field has a default so the file is optional.
"""
from pathlib import Path

from pydantic import BaseModel, Field

from models.story import BookType

MM_PER_INCH = 25.4

# Named paper formats accepted by Chromium's page.pdf, portrait (width, height)
PAPER_SIZES_MM = {
    "letter": (215.9, 279.4),
    "legal": (215.9, 355.6),
    "tabloid": (279.4, 431.8),
    "ledger": (431.8, 279.4),
    "a0": (841.0, 1189.0),
    "a1": (594.0, 841.0),
    "a2": (420.0, 594.0),
    "a3": (297.0, 420.0),
    "a4": (210.0, 297.0),
    "a5": (148.0, 210.0),
    "a6": (105.0, 148.0),
}


def paper_size_mm(paper_format: str, landscape: bool = False) -> tuple[float, float]:
    """Page size of a named paper format, swapped for landscape.

    Raises ValueError for a name Chromium does not know.
    """
    try:
        width, height = PAPER_SIZES_MM[paper_format.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown paper format: {paper_format!r}") from None
    return (height, width) if landscape else (width, height)


class BookGeometry(BaseModel):
    """Spread geometry of a physical book: two trim pages, a spine, bleed on every edge."""
    trim_mm: float = 220.0
    spine_mm: float = 5.0
    bleed_mm: float = 5.0

    @property
    def spread_width_mm(self) -> float:
        return self.trim_mm * 2 + self.spine_mm + self.bleed_mm * 2

    @property
    def spread_height_mm(self) -> float:
        return self.trim_mm + self.bleed_mm * 2

    @property
    def sheet_width_mm(self) -> float:
        """Width of one half of the spread, outer bleed included, spine excluded."""
        return self.trim_mm + self.bleed_mm

    def spread_size_inches(self) -> tuple[str, str]:
        return (
            f"{self.spread_width_mm / MM_PER_INCH:.4f}in",
            f"{self.spread_height_mm / MM_PER_INCH:.4f}in",
        )


class Viewport(BaseModel):
    width: int
    height: int
    device_scale_factor: float = 1.0


class ViewportPresets(BaseModel):
    illustrated: Viewport = Field(default_factory=lambda: Viewport(width=1200, height=1600, device_scale_factor=5))
    illustrated_email: Viewport = Field(default_factory=lambda: Viewport(width=1000, height=1400, device_scale_factor=1.2))
    text_only: Viewport = Field(default_factory=lambda: Viewport(width=1200, height=1600, device_scale_factor=5))
    cover: Viewport = Field(default_factory=lambda: Viewport(width=1200, height=800, device_scale_factor=5))


class FormatCatalog(BaseModel):
    """All per-format constants in one place."""
    hardcover: BookGeometry = Field(default_factory=lambda: BookGeometry(spine_mm=8.0, bleed_mm=15.0))
    softcover: BookGeometry = Field(default_factory=lambda: BookGeometry(spine_mm=5.0, bleed_mm=5.0))
    viewports: ViewportPresets = Field(default_factory=ViewportPresets)

    def geometry_for(self, book_type: BookType) -> BookGeometry:
        """Hardcover geometry for hardcover books; softcover geometry for everything else."""
        if book_type is BookType.HARDCOVER:
            return self.hardcover
        return self.softcover

    @classmethod
    def load(cls, path: Path) -> "FormatCatalog":
        """Load from a YAML file. Missing fields use Pydantic defaults.

        Raises FileNotFoundError if path does not exist.
        """
        import yaml  # lazy: only needed at load time
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return cls.model_validate(data)

    @classmethod
    def load_or_default(cls, path: Path) -> "FormatCatalog":
        """Load from path if it exists, otherwise return the default catalog."""
        if path.exists():
            return cls.load(path)
        return cls()
