"""The three PDF products behind one object.

Each operation validates the request, merges the caller's options over its
own defaults, assembles HTML and hands it to the render driver:

  render_illustrated_book   A4 portrait, 20mm margins
  render_text_only_book     A4 portrait, 5mm margins
  render_cover              A4 landscape, 0mm margins

Client mistakes raise ClientInputError subclasses before any rendering starts.
"""
import logging
from typing import Callable, Sequence

from pydantic import ValidationError

from models.book_format import FormatCatalog
from models.options import Margin, RenderOptions, RenderRequest
from models.story import Story
from pipeline.assemble import render_book_html, render_cover_html
from pipeline.assets import AssetCache
from pipeline.browser import LaunchStrategy, default_strategies
from pipeline.render import (
    TEXT_ONLY_IMAGE_TIMEOUT_MS,
    RenderJob,
    cover_pdf_options,
    paged_pdf_options,
    physical_pdf_options,
    render_pdf,
)
from settings import Settings
from utils.asset_weights import log_asset_weights
from utils.palette import PaletteSelector, select_monochromatic_palette

logger = logging.getLogger(__name__)

ILLUSTRATED_DEFAULTS = RenderOptions(format="A4", orientation="portrait", margin=Margin.uniform("20mm"))
TEXT_ONLY_DEFAULTS = RenderOptions(format="A4", orientation="portrait", margin=Margin.uniform("5mm"))
COVER_DEFAULTS = RenderOptions(format="A4", orientation="landscape", margin=Margin.uniform("0mm"))

BOOK_REQUIRED_FIELDS = ("story", "childName", "selectedGender")
COVER_REQUIRED_FIELDS = ("story", "childName")

Renderer = Callable[[str, RenderJob, Sequence[LaunchStrategy]], bytes]


class ClientInputError(ValueError):
    """The request cannot be rendered as given (HTTP 400)."""


class MissingFieldsError(ClientInputError):
    def __init__(self, required: Sequence[str]) -> None:
        self.required = tuple(required)
        super().__init__(f"Missing required fields: {', '.join(self.required)}")


class InvalidStoryError(ClientInputError):
    """The story or options payload does not match the expected shape."""


class BookPdfService:
    def __init__(
        self,
        settings: Settings,
        assets: AssetCache | None = None,
        formats: FormatCatalog | None = None,
        palette: PaletteSelector = select_monochromatic_palette,
        renderer: Renderer = render_pdf,
        strategies: Sequence[LaunchStrategy] | None = None,
    ) -> None:
        self.settings = settings
        self.assets = assets or AssetCache(settings)
        self.formats = formats or FormatCatalog.load_or_default(settings.formats_yaml_path)
        self.palette = palette
        self.renderer = renderer
        self.strategies = list(strategies) if strategies is not None else default_strategies(settings)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def render_illustrated_book(self, request: RenderRequest) -> bytes:
        """Full illustrated interior. Accepts ``story`` or ``selectedStory``."""
        raw_story = request.effective_story
        if not raw_story or not request.child_name or not request.selected_gender:
            raise MissingFieldsError(BOOK_REQUIRED_FIELDS)
        story = _parse_story(raw_story)
        options = _parse_options(request.options, ILLUSTRATED_DEFAULTS)

        html = render_book_html(
            story, request.child_name, request.age, request.selected_gender,
            options, self.assets, self.formats, variant="illustrated",
        )
        if self.settings.log_asset_weights:
            log_asset_weights("generate-pdf", html)

        book_type = story.resolved_book_type
        viewports = self.formats.viewports
        if book_type.is_physical:
            pdf_options = physical_pdf_options(self.formats.geometry_for(book_type))
        else:
            pdf_options = paged_pdf_options(options)
        job = RenderJob(
            label="generate-pdf",
            viewport=viewports.illustrated_email if options.optimize_for_email else viewports.illustrated,
            pdf_options=pdf_options,
        )
        return self.renderer(html, job, self.strategies)

    def render_text_only_book(self, request: RenderRequest) -> bytes:
        """Lighter interior: background art suppressed, caller page size always used."""
        if not request.story or not request.child_name or not request.selected_gender:
            raise MissingFieldsError(BOOK_REQUIRED_FIELDS)
        story = _parse_story(request.story)
        options = _parse_options(request.options, TEXT_ONLY_DEFAULTS)

        html = render_book_html(
            story, request.child_name, request.age, request.selected_gender,
            options, self.assets, self.formats, variant="text-only",
        )
        job = RenderJob(
            label="generate-text-only",
            viewport=self.formats.viewports.text_only,
            pdf_options=paged_pdf_options(options),
            wait_until="networkidle",
            image_timeout_ms=TEXT_ONLY_IMAGE_TIMEOUT_MS,
        )
        return self.renderer(html, job, self.strategies)

    def render_cover(self, request: RenderRequest) -> bytes:
        """Wrap-around cover sized to the physical spread of the story's format."""
        if not request.story or not request.child_name:
            raise MissingFieldsError(COVER_REQUIRED_FIELDS)
        story = _parse_story(request.story)
        options = _parse_options(request.options, COVER_DEFAULTS)

        html = render_cover_html(
            story, request.child_name, request.age, options,
            self.assets, self.formats, palette=self.palette,
        )
        job = RenderJob(
            label="generate-cover",
            viewport=self.formats.viewports.cover,
            pdf_options=cover_pdf_options(self.formats.geometry_for(story.resolved_book_type)),
        )
        return self.renderer(html, job, self.strategies)


def _parse_story(raw: dict) -> Story:
    try:
        return Story.model_validate(raw)
    except ValidationError as exc:
        raise InvalidStoryError(f"Invalid story: {exc.error_count()} validation error(s)") from exc


def _parse_options(raw: dict, defaults: RenderOptions) -> RenderOptions:
    try:
        return RenderOptions.model_validate(raw or {}).with_defaults(defaults)
    except ValidationError as exc:
        raise InvalidStoryError(f"Invalid options: {exc.error_count()} validation error(s)") from exc
