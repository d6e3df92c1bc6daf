"""Fonts, logo, ornament and Jinja2 templates, cached per service instance.

Reads:  <assets_dir>/FbSpacer-*.otf, pft_frank_bold-webfont.ttf  (font search dirs)
        <assets_dir>/logo.png, <assets_dir>/Leafe.svg
        <assets_dir>/templates/*.html.j2, then the bundled templates/ directory

Fonts and images are read once per cache. Templates are read once unless
hot reload is on, in which case every ``templates()`` call re-reads them from
disk. Missing fonts or images degrade rendering; they never fail it.
"""
import base64
import logging
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, TemplateNotFound, meta, select_autoescape

from settings import Settings

logger = logging.getLogger(__name__)

# Template key → file name
TEMPLATE_FILES = {
    "softcover": "book-softcover.html.j2",
    "digital": "book-digital.html.j2",
    "hardcover": "book-hardcover.html.j2",
    "cover": "cover.html.j2",
    "cover-softcover": "cover-softcover.html.j2",
}
# Used when the key's own file is absent
TEMPLATE_SUBSTITUTES = {"digital": "softcover"}

# Context variables each template kind must reference at its top level
BOOK_TEMPLATE_CONTRACT = frozenset({
    "font_css", "book_title", "cover_image_url", "site_logo_url", "dedication", "sheets",
})
COVER_TEMPLATE_CONTRACT = frozenset({
    "font_css", "gradient_css", "book_title", "child_name", "cover_image_url", "child_photo_url",
})
TEMPLATE_CONTRACTS = {
    "softcover": BOOK_TEMPLATE_CONTRACT,
    "digital": BOOK_TEMPLATE_CONTRACT,
    "hardcover": BOOK_TEMPLATE_CONTRACT,
    "cover": COVER_TEMPLATE_CONTRACT,
    "cover-softcover": COVER_TEMPLATE_CONTRACT,
}

# Font file name → CSS font-family
INTERIOR_FONT_FILES = {
    "FbSpacer-Regular_0.otf": "SpacerRegular",
    "FbSpacer-Bold_0.otf": "FbSpacerBold",
    "FbSpacer-Black_0.otf": "FbSpacerBlack",
}
TITLE_FONT_FILE = "pft_frank_bold-webfont.ttf"


class TemplateNotAvailableError(LookupError):
    """No template could be loaded for a required key."""


class AssetCache:
    def __init__(
        self,
        settings: Settings,
        template_dirs: list[Path] | None = None,
        hot_reload: bool | None = None,
    ) -> None:
        self._settings = settings
        self._template_dirs = template_dirs if template_dirs is not None else settings.template_dirs
        self.hot_reload = settings.hot_reload_templates if hot_reload is None else hot_reload
        self.invalidate()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        """Drop every cached asset; the next lookup reads from disk."""
        self._fonts: dict[str, str] | None = None
        self._title_font: str | None = None
        self._title_font_loaded = False
        self._logo: str | None = None
        self._ornament: str | None = None
        self._templates: dict[str, Template] | None = None

    def reload(self) -> None:
        """Invalidate and eagerly read everything again."""
        self.invalidate()
        self.fonts()
        self.title_font()
        self.logo()
        self.ornament()
        self.templates()

    # ------------------------------------------------------------------
    # Fonts
    # ------------------------------------------------------------------

    def fonts(self) -> dict[str, str]:
        """Interior font set as ``{font_family: base64}``. May be partial or empty."""
        if self._fonts is None:
            fonts: dict[str, str] = {}
            for filename, family in INTERIOR_FONT_FILES.items():
                path = self._find_font(filename)
                if path is None:
                    logger.warning("Font not found: %s (searched %d dirs)", filename, len(self._settings.font_search_dirs))
                    continue
                fonts[family] = base64.b64encode(path.read_bytes()).decode("ascii")
                logger.info("Loaded font %s from %s", family, path)
            self._fonts = fonts
        return self._fonts

    def title_font(self) -> str | None:
        """Base64 of the display font used on covers, or None."""
        if not self._title_font_loaded:
            path = self._find_font(TITLE_FONT_FILE)
            if path is None:
                logger.warning("Title font not found: %s", TITLE_FONT_FILE)
            else:
                self._title_font = base64.b64encode(path.read_bytes()).decode("ascii")
            self._title_font_loaded = True
        return self._title_font

    def _find_font(self, filename: str) -> Path | None:
        for base in self._settings.font_search_dirs:
            candidate = base / filename
            if candidate.is_file():
                return candidate
        return None

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def logo(self) -> str:
        """Site logo as a PNG data URL, or "" when absent."""
        if self._logo is None:
            self._logo = _read_data_url(self._settings.logo_path, "image/png")
        return self._logo

    def ornament(self) -> str:
        """Leaf ornament as an SVG data URL, or "" when absent."""
        if self._ornament is None:
            self._ornament = _read_data_url(self._settings.ornament_path, "image/svg+xml")
        return self._ornament

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def templates(self) -> dict[str, Template]:
        if self._templates is None or self.hot_reload:
            self._templates = self._load_templates()
        return self._templates

    def template(self, key: str) -> Template:
        """Return the template for ``key``. Raises TemplateNotAvailableError when absent."""
        template = self.templates().get(key)
        if template is None:
            raise TemplateNotAvailableError(f"Template not found for key: {key}")
        return template

    def _load_templates(self) -> dict[str, Template]:
        env = _make_environment(self._template_dirs)
        loaded: dict[str, Template] = {}
        for key, filename in TEMPLATE_FILES.items():
            name = filename
            if not _template_exists(env, name) and key in TEMPLATE_SUBSTITUTES:
                substitute = TEMPLATE_FILES[TEMPLATE_SUBSTITUTES[key]]
                if _template_exists(env, substitute):
                    logger.warning("%s template not found, falling back to %s", key, substitute)
                    name = substitute
            if not _template_exists(env, name):
                logger.warning("Template not found for %s: %s", key, filename)
                continue
            missing = _missing_context(env, name, TEMPLATE_CONTRACTS[key])
            if missing:
                logger.error("Template %s for %s does not reference %s; skipping", name, key, sorted(missing))
                continue
            loaded[key] = env.get_template(name)
        logger.debug("Loaded templates: %s", sorted(loaded))
        return loaded


def _make_environment(template_dirs: list[Path]) -> Environment:
    return Environment(
        loader=FileSystemLoader([str(d) for d in template_dirs]),
        autoescape=select_autoescape(["html", "j2"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _template_exists(env: Environment, name: str) -> bool:
    try:
        env.loader.get_source(env, name)
    except TemplateNotFound:
        return False
    return True


def _missing_context(env: Environment, name: str, required: frozenset[str]) -> set[str]:
    source, _, _ = env.loader.get_source(env, name)
    referenced = meta.find_undeclared_variables(env.parse(source))
    return set(required) - referenced


def _read_data_url(path: Path, mime_type: str) -> str:
    if not path.is_file():
        logger.warning("Asset not found: %s", path)
        return ""
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"
