"""Tests for the FormatCatalog model and formats.yaml loader."""
from pathlib import Path

import pytest

from models.book_format import BookGeometry, FormatCatalog, paper_size_mm
from models.story import BookType


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

class TestDefaults:
    def test_hardcover_spread_is_485_by_250(self):
        g = FormatCatalog().geometry_for(BookType.HARDCOVER)
        assert g.spine_mm == 8.0
        assert g.bleed_mm == 15.0
        assert g.spread_width_mm == 220 * 2 + 8 + 15 * 2
        assert g.spread_height_mm == 220 + 15 * 2

    def test_softcover_spread_is_455_by_230(self):
        g = FormatCatalog().geometry_for(BookType.SOFTCOVER)
        assert g.spread_width_mm == 455.0
        assert g.spread_height_mm == 230.0

    def test_digital_uses_softcover_geometry(self):
        catalog = FormatCatalog()
        assert catalog.geometry_for(BookType.DIGITAL) == catalog.softcover

    def test_sheet_width_excludes_spine(self):
        g = BookGeometry(spine_mm=8.0, bleed_mm=15.0)
        assert g.sheet_width_mm * 2 + g.spine_mm == g.spread_width_mm

    def test_viewports(self):
        v = FormatCatalog().viewports
        assert (v.illustrated.width, v.illustrated.height, v.illustrated.device_scale_factor) == (1200, 1600, 5)
        assert (v.illustrated_email.width, v.illustrated_email.height) == (1000, 1400)
        assert v.illustrated_email.device_scale_factor == pytest.approx(1.2)
        assert (v.cover.width, v.cover.height) == (1200, 800)


# ---------------------------------------------------------------------------
# Paper formats (paged output)
# ---------------------------------------------------------------------------

class TestPaperSize:
    def test_a4_portrait(self):
        assert paper_size_mm("A4") == (210.0, 297.0)

    def test_landscape_swaps(self):
        assert paper_size_mm("A4", landscape=True) == (297.0, 210.0)

    def test_case_insensitive(self):
        assert paper_size_mm("letter") == paper_size_mm(" Letter ") == (215.9, 279.4)

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown paper format"):
            paper_size_mm("B7")


# ---------------------------------------------------------------------------
# Inches (cover page size)
# ---------------------------------------------------------------------------

class TestSpreadSizeInches:
    def test_hardcover_inches_four_decimals(self):
        width, height = FormatCatalog().hardcover.spread_size_inches()
        assert width == "19.0945in"
        assert height == "9.8425in"

    def test_softcover_inches_four_decimals(self):
        width, height = FormatCatalog().softcover.spread_size_inches()
        assert width == "17.9134in"
        assert height == "9.0551in"


# ---------------------------------------------------------------------------
# load() / load_or_default()
# ---------------------------------------------------------------------------

class TestLoad:
    def test_partial_yaml_keeps_other_defaults(self, tmp_path: Path):
        path = tmp_path / "formats.yaml"
        path.write_text("hardcover:\n  spine_mm: 10\n", encoding="utf-8")
        catalog = FormatCatalog.load(path)
        assert catalog.hardcover.spine_mm == 10.0
        assert catalog.hardcover.bleed_mm == 5.0  # BookGeometry default, not the catalog default
        assert catalog.softcover.spine_mm == 5.0

    def test_empty_yaml_is_default(self, tmp_path: Path):
        path = tmp_path / "formats.yaml"
        path.write_text("", encoding="utf-8")
        assert FormatCatalog.load(path) == FormatCatalog()

    def test_load_missing_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            FormatCatalog.load(tmp_path / "nope.yaml")

    def test_load_or_default_missing_file(self, tmp_path: Path):
        assert FormatCatalog.load_or_default(tmp_path / "nope.yaml") == FormatCatalog()

    def test_load_or_default_existing_file(self, tmp_path: Path):
        path = tmp_path / "formats.yaml"
        path.write_text("viewports:\n  cover:\n    width: 1600\n    height: 900\n", encoding="utf-8")
        catalog = FormatCatalog.load_or_default(path)
        assert catalog.viewports.cover.width == 1600
        assert catalog.viewports.cover.device_scale_factor == 1.0
