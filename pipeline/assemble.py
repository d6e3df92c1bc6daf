"""Document assembly: turn a story and a recipient into a print-ready HTML document.

The assembler decides everything about the document that is not CSS: which
pages appear, how they map to sheets, which image each sheet shows, what the
dedication says, and which template renders it. Templates receive a typed
context (``BookContext`` / ``CoverContext``) and Jinja2 autoescaping handles
all user text; only the CSS blocks built here are passed as Markup.

Layouts:
  - digital:             one combined sheet per page; image and text swap
                         sides every page, starting with the image on the right
  - hardcover/softcover: the first page is dropped (it lives on the cover);
                         every remaining page becomes an image sheet followed
                         by a text sheet
"""
import logging
from dataclasses import dataclass, fields
from typing import Literal

from markupsafe import Markup

from models.book_format import BookGeometry, FormatCatalog, paper_size_mm
from models.options import RenderOptions
from models.story import BookType, Story, StoryPage
from pipeline.assets import AssetCache
from utils.images import (
    EMAIL_COVER_DELIVERY,
    EMAIL_PAGE_DELIVERY,
    PRINT_DELIVERY,
    optimize_image_url,
    to_data_uri,
)
from utils.palette import PaletteSelector, select_monochromatic_palette
from utils.text import personalize

logger = logging.getLogger(__name__)

Variant = Literal["illustrated", "text-only"]

DEDICATION_FOR = "ספר זה נוצר באהבה עבור {name}"
DEDICATION_GENERIC = "ספר זה נוצר באהבה עבור ילד אהוב"
DEDICATION_TITLE_FALLBACK = "מוקדש באהבה"
COVER_DEDICATION_FALLBACK = "ספר מיוחד זה נוצר במיוחד עבורך, עם אהבה רבה"

# (font family in AssetCache.fonts(), CSS family, CSS weight)
_INTERIOR_FACES = (
    ("SpacerRegular", "FbSpacer", 400),
    ("FbSpacerBold", "FbSpacerBold", 700),
    ("FbSpacerBlack", "FbSpacerBlack", 900),
)

_EMAIL_CSS = (
    ".sheet{background:none !important;background-image:none !important;}\n"
    ".cover-image{filter:none !important;}\n"
)


# ---------------------------------------------------------------------------
# Template contexts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Sheet:
    """One rendered page surface."""
    kind: Literal["image", "text", "combined"]
    page_number: int
    image_src: str = ""
    text: str = ""
    side: Literal["right", "left"] | None = None  # combined sheets only


@dataclass(frozen=True)
class Dedication:
    title: str
    text: str
    ornamented: bool = False


@dataclass(frozen=True)
class BookContext:
    font_css: Markup
    book_title: str
    book_subtitle: str
    book_description: str
    child_name: str
    cover_image_url: str
    site_logo_url: str
    leaf_url: str
    dedication: Dedication
    sheets: list[Sheet]
    physical: bool
    geometry: BookGeometry
    page_css: Markup
    body_class: str


@dataclass(frozen=True)
class CoverContext:
    font_css: Markup
    gradient_css: Markup
    book_title: str
    book_subtitle: str
    book_description: str
    back_cover_text: str
    child_name: str
    cover_image_url: str
    child_photo_url: str
    site_logo_url: str
    dedication_message: str
    geometry: BookGeometry


def _as_template_vars(context: BookContext | CoverContext) -> dict:
    return {f.name: getattr(context, f.name) for f in fields(context)}


# ---------------------------------------------------------------------------
# Book interior
# ---------------------------------------------------------------------------

def template_key_for(book_type: BookType) -> str:
    return book_type.value


def render_book_html(
    story: Story,
    child_name: str,
    child_age: str | None,
    selected_gender: str | None,
    options: RenderOptions,
    assets: AssetCache,
    formats: FormatCatalog,
    variant: Variant = "illustrated",
) -> str:
    """Render the full book document (front matter, dedication, story sheets).

    Raises TemplateNotAvailableError when no template exists for the story's
    book type.
    """
    book_type = story.resolved_book_type
    template = assets.template(template_key_for(book_type))
    geometry = formats.geometry_for(book_type)

    pages = story.pages_for(selected_gender)
    email = options.optimize_for_email
    sheets = build_sheets(story, pages, book_type, child_name, child_age, email)
    leaf_url = assets.ornament()

    font_css = build_interior_font_css(assets.fonts())
    if email:
        font_css += Markup(_EMAIL_CSS)

    context = BookContext(
        font_css=font_css,
        book_title=personalize(story.title, child_name, child_age),
        book_subtitle=personalize(story.short_description or story.back_cover_text, child_name, child_age),
        book_description=personalize(story.back_cover_text or story.description, child_name, child_age),
        child_name=child_name or "",
        cover_image_url=resolve_book_cover_image(story, email),
        site_logo_url=assets.logo(),
        leaf_url=leaf_url,
        dedication=resolve_dedication(story, child_name, child_age, book_type.is_physical, bool(leaf_url)),
        sheets=sheets,
        physical=book_type.is_physical,
        geometry=geometry,
        page_css=build_page_css(book_type, variant, options, geometry),
        body_class=f"variant-{variant}",
    )
    logger.info(
        "Assembled %s %s book: %d source pages → %d sheets",
        variant, book_type.value, len(pages), len(sheets),
    )
    return template.render(**_as_template_vars(context))


def build_sheets(
    story: Story,
    pages: list[StoryPage],
    book_type: BookType,
    child_name: str,
    child_age: str | None,
    optimize_for_email: bool = False,
) -> list[Sheet]:
    """Lay the story pages out as sheets.

    Image overrides are looked up by the page's position in the source
    sequence, so they stay attached to the right page after the leading page
    of a physical book is dropped.
    """
    entries = list(enumerate(pages))
    if book_type.is_physical:
        entries = entries[1:]

    sheets: list[Sheet] = []
    for display_index, (original_index, page) in enumerate(entries):
        image_src = resolve_page_image(story, page, original_index, optimize_for_email)
        text = personalize(page.text, child_name, child_age)
        number = display_index + 1
        if book_type.is_physical:
            sheets.append(Sheet(kind="image", page_number=number, image_src=image_src))
            sheets.append(Sheet(kind="text", page_number=number, text=text))
        else:
            side = "right" if display_index % 2 == 0 else "left"
            sheets.append(Sheet(kind="combined", page_number=number, image_src=image_src, text=text, side=side))
    return sheets


def resolve_page_image(story: Story, page: StoryPage, index: int, optimize_for_email: bool = False) -> str:
    """Override (selected, then main) → page image → "". CDN URLs are resized."""
    src = story.page_image_override(index) or page.image_url or ""
    delivery = EMAIL_PAGE_DELIVERY if optimize_for_email else PRINT_DELIVERY
    return optimize_image_url(src, delivery)


def resolve_book_cover_image(story: Story, optimize_for_email: bool = False) -> str:
    """Front-matter cover image.

    Priority:
    1. Cover override chosen in the editor (selected, then main)
    2. ``coverImage.url``
    3. ``coverImage.base64`` as a data URI
    """
    src = story.cover_image_override() or ""
    cover = story.cover_image
    if not src and cover is not None:
        if cover.url:
            src = cover.url
        elif cover.base64:
            src = to_data_uri(cover.base64, cover.mime_type)
    delivery = EMAIL_COVER_DELIVERY if optimize_for_email else PRINT_DELIVERY
    return optimize_image_url(src, delivery)


def resolve_dedication(
    story: Story,
    child_name: str | None,
    child_age: str | None,
    physical: bool,
    has_ornament: bool,
) -> Dedication:
    raw = (story.dedication_message or story.back_cover_text or "").strip()
    if not raw:
        name = _recipient_name(story, child_name)
        raw = DEDICATION_FOR.format(name=name) if name else DEDICATION_GENERIC
    title = story.title or (story.book_data.title if story.book_data else None) or DEDICATION_TITLE_FALLBACK
    return Dedication(
        title=personalize(title, child_name, child_age),
        text=personalize(raw, child_name, child_age).strip(),
        ornamented=physical and has_ornament,
    )


def _recipient_name(story: Story, child_name: str | None) -> str:
    return (
        child_name
        or story.child_name
        or (story.book_data.child_name if story.book_data else None)
        or (story.book_content.child_name if story.book_content else None)
        or ""
    )


def build_interior_font_css(fonts: dict[str, str]) -> Markup:
    """``@font-face`` rules for the interior fonts that were found.

    The body font stack always ends in a generic family so a partial or
    empty font set still renders.
    """
    rules = [
        "@font-face{font-family:'%s';src:url('data:font/otf;base64,%s') format('opentype');"
        "font-weight:%d;font-style:normal;font-display:swap;}" % (family, fonts[key], weight)
        for key, family, weight in _INTERIOR_FACES
        if key in fonts
    ]
    if len(rules) < len(_INTERIOR_FACES):
        missing = [key for key, _, _ in _INTERIOR_FACES if key not in fonts]
        logger.warning("Missing interior fonts %s; falling back to sans-serif", missing)
    rules.append("html,body{font-family:'FbSpacer','FbSpacerBold','FbSpacerBlack',sans-serif;}")
    return Markup("\n".join(rules) + "\n")


def build_page_css(book_type: BookType, variant: Variant, options: RenderOptions, geometry: BookGeometry) -> Markup:
    """@page rule plus page-box sizing.

    Physical illustrated books print one spread per page with no margin.
    Everything else prints on the caller's paper format and margins, and the
    page boxes shrink to the area inside those margins, leaving the bottom
    margin free for the page-number footer.
    """
    if book_type.is_physical and variant == "illustrated":
        return Markup(
            "@page{size:%gmm %gmm;margin:0;}\n" % (geometry.spread_width_mm, geometry.spread_height_mm)
        )
    width, height = paper_size_mm(options.format, options.landscape)
    m = options.margin
    return Markup(
        "@page{size:%gmm %gmm;margin:%s %s %s %s;}\n"
        ".page,.spread,.dedication{width:100%%;height:calc(%gmm - %s - %s);}\n"
        ".spread{grid-template-columns:1fr %gmm 1fr;}\n"
        % (width, height, m.top, m.right, m.bottom, m.left, height, m.top, m.bottom, geometry.spine_mm)
    )


# ---------------------------------------------------------------------------
# Cover
# ---------------------------------------------------------------------------

def cover_template_key_for(book_type: BookType) -> str:
    return "cover-softcover" if book_type is BookType.SOFTCOVER else "cover"


def render_cover_html(
    story: Story,
    child_name: str,
    child_age: str | None,
    options: RenderOptions,
    assets: AssetCache,
    formats: FormatCatalog,
    palette: PaletteSelector = select_monochromatic_palette,
) -> str:
    """Render the wrap-around cover (back, spine, front) for the story's format."""
    book_type = story.resolved_book_type
    template = assets.template(cover_template_key_for(book_type))

    cover_art = resolve_cover_art(story)
    palette_source = (story.cover_image.url if story.cover_image else None) or cover_art
    start, end = palette(palette_source)
    gradient_css = Markup(".bg-tint{{background:linear-gradient(90deg, {}, {}) !important;}}").format(end, start)

    def _text(value: str | None) -> str:
        return personalize(value, child_name, child_age)

    context = CoverContext(
        font_css=build_cover_font_css(assets.fonts(), assets.title_font()),
        gradient_css=gradient_css,
        book_title=_text(story.title),
        book_subtitle=_text(story.short_description or story.back_cover_text),
        book_description=_text(story.back_cover_text or story.description),
        back_cover_text=_text(story.back_cover_text),
        child_name=child_name or "",
        cover_image_url=cover_art,
        child_photo_url=resolve_child_photo(story),
        site_logo_url=assets.logo(),
        dedication_message=_text(story.dedication_message or COVER_DEDICATION_FALLBACK),
        geometry=formats.geometry_for(book_type),
    )
    logger.info("Assembled %s cover (template %s)", book_type.value, cover_template_key_for(book_type))
    return template.render(**_as_template_vars(context))


def resolve_cover_art(story: Story) -> str:
    """Cover artwork for the wrap-around cover: embedded image first, then URL."""
    cover = story.cover_image
    if cover is None:
        return ""
    if cover.base64:
        return to_data_uri(cover.base64, cover.mime_type)
    if cover.url:
        return optimize_image_url(cover.url, PRINT_DELIVERY)
    return ""


def resolve_child_photo(story: Story) -> str:
    """Photo of the child shown on the cover.

    Priority:
    1. ``childPhoto`` (embedded image, then URL)
    2. ``uploadedImage``
    3. ``originalCharacterImage``
    4. ``characterImageBase64``
    5. ``bookData.characterImageBase64``
    6. ``bookData.uploadedImage``
    """
    photo = story.child_photo
    if photo is not None:
        if photo.base64:
            return to_data_uri(photo.base64, photo.mime_type)
        if photo.url:
            return optimize_image_url(photo.url, PRINT_DELIVERY)
    book_data = story.book_data
    return (
        story.uploaded_image
        or story.original_character_image
        or story.character_image_base64
        or (book_data.character_image_base64 if book_data else None)
        or (book_data.uploaded_image if book_data else None)
        or ""
    )


def build_cover_font_css(fonts: dict[str, str], title_font: str | None) -> Markup:
    rules = [
        "@font-face{font-family:'%s';src:url('data:font/otf;base64,%s') format('opentype');"
        "font-weight:normal;font-style:normal;}" % (family, data)
        for family, data in fonts.items()
    ]
    if title_font:
        rules.append(
            "@font-face{font-family:'PFTFrank';src:url('data:font/ttf;base64,%s') format('truetype');"
            "font-weight:700;font-style:normal;font-display:swap;}" % title_font
        )
        rules.append("html,body{font-family:'PFTFrank',sans-serif;}")
    else:
        rules.append("html,body{font-family:sans-serif;}")
    return Markup("\n".join(rules) + "\n")
