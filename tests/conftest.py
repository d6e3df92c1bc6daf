from pathlib import Path

import pytest

from pipeline.assets import INTERIOR_FONT_FILES, TITLE_FONT_FILE, AssetCache
from settings import Settings

# Smallest byte strings that stand in for real assets; only their presence and base64 matter
FAKE_FONT = b"OTTO\x00\x01fake-font"
FAKE_PNG = b"\x89PNG\r\n\x1a\nfake-logo"
FAKE_SVG = b'<svg xmlns="http://www.w3.org/2000/svg"><path d="M0 0h1v1z"/></svg>'


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    """Asset directory laid out like the production one:

        fonts/          FbSpacer interior fonts + the cover title font
        logo.png        site logo
        Leafe.svg       leaf ornament
        templates/      operator template overrides (empty)
    """
    fonts = tmp_path / "fonts"
    fonts.mkdir()
    for filename in (*INTERIOR_FONT_FILES, TITLE_FONT_FILE):
        (fonts / filename).write_bytes(FAKE_FONT)
    (tmp_path / "logo.png").write_bytes(FAKE_PNG)
    (tmp_path / "Leafe.svg").write_bytes(FAKE_SVG)
    (tmp_path / "templates").mkdir()
    return tmp_path


@pytest.fixture
def settings(assets_dir: Path) -> Settings:
    """Production settings over the temp asset directory. No browser is ever launched in unit tests."""
    return Settings(assets_dir=assets_dir, environment="production")


@pytest.fixture
def bare_settings(tmp_path: Path) -> Settings:
    """Settings over an empty asset directory: no fonts, logo or ornament."""
    empty = tmp_path / "empty-assets"
    empty.mkdir()
    return Settings(assets_dir=empty, environment="production")


@pytest.fixture
def assets(settings: Settings) -> AssetCache:
    return AssetCache(settings)
