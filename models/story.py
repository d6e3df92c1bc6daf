"""Story record as sent by the storefront, in its camelCase wire shape.

Every field is optional: stories come from several generations of the
frontend and the assembler resolves each value through fallback chains.
Unknown fields are ignored.
"""
import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Product labels used by the storefront for the two physical book types
HARDCOVER_LABEL = "ספר כריכה קשה"
SOFTCOVER_LABEL = "חוברת כריכה רכה"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class BookType(str, Enum):
    DIGITAL = "digital"
    HARDCOVER = "hardcover"
    SOFTCOVER = "softcover"

    @classmethod
    def classify(cls, value: str | None) -> "BookType":
        """Map a storefront book-type label to a BookType. Unknown values are digital."""
        if value is None:
            return cls.DIGITAL
        label = value.strip()
        if label == HARDCOVER_LABEL or label.lower() == cls.HARDCOVER.value:
            return cls.HARDCOVER
        if label == SOFTCOVER_LABEL or label.lower() == cls.SOFTCOVER.value:
            return cls.SOFTCOVER
        return cls.DIGITAL

    @property
    def is_physical(self) -> bool:
        return self is not BookType.DIGITAL


def gender_branch(selected_gender: str | None) -> str:
    """Map the storefront's gender selection to a pages-mapping key."""
    if (selected_gender or "").strip().lower() in ("girl", "female"):
        return "female"
    return "male"


class ImageAsset(CamelModel):
    """An image given either by URL or as embedded base64 with its MIME type."""
    url: str | None = None
    base64: str | None = None
    mime_type: str | None = None


class ImageChoice(CamelModel):
    selected_image: str | None = None
    main_image: str | None = None

    def resolve(self) -> str | None:
        """Selected image wins over main image."""
        return self.selected_image or self.main_image


class ImageSlotState(CamelModel):
    images: ImageChoice = Field(default_factory=ImageChoice)

    @field_validator("images", mode="before")
    @classmethod
    def null_images_are_empty(cls, v):
        return {} if v is None else v


class ImageState(CamelModel):
    """Per-story image overrides chosen by the customer in the editor."""
    cover: ImageSlotState | None = None
    pages: dict[int, ImageSlotState] = Field(default_factory=dict)

    @field_validator("pages", mode="before")
    @classmethod
    def index_list_by_position(cls, v):
        # The editor sends either a positional list or an index-keyed object
        if isinstance(v, list):
            return {i: slot for i, slot in enumerate(v) if slot is not None}
        if isinstance(v, dict):
            return {k: slot for k, slot in v.items() if slot is not None}
        return v or {}

    def page_override(self, index: int) -> str | None:
        slot = self.pages.get(index)
        return slot.images.resolve() if slot else None

    def cover_override(self) -> str | None:
        return self.cover.images.resolve() if self.cover else None


class StoryPage(CamelModel):
    page_number: int | None = None
    text: str | None = ""
    image_url: str | None = None


class BookData(CamelModel):
    child_name: str | None = None
    title: str | None = None
    character_image_base64: str | None = None
    uploaded_image: str | None = None


class BookContent(CamelModel):
    child_name: str | None = None


class Story(CamelModel):
    title: str | None = ""
    short_description: str | None = None
    description: str | None = None
    back_cover_text: str | None = None
    dedication_message: str | None = None
    book_type: str | None = None
    child_name: str | None = None

    pages: list[StoryPage] | dict[str, list[StoryPage]] = Field(default_factory=list)
    image_state: ImageState | None = None

    cover_image: ImageAsset | None = None
    child_photo: ImageAsset | None = None
    uploaded_image: str | None = None
    original_character_image: str | None = None
    character_image_base64: str | None = None

    book_data: BookData | None = None
    book_content: BookContent | None = None

    @field_validator("pages", mode="before")
    @classmethod
    def null_pages_are_empty(cls, v):
        return [] if v is None else v

    @property
    def resolved_book_type(self) -> BookType:
        return BookType.classify(self.book_type)

    def pages_for(self, selected_gender: str | None) -> list[StoryPage]:
        """Return the page sequence for the recipient.

        A flat list is shared by every recipient; a gender-keyed mapping
        yields the matching branch, or nothing when that branch is absent.
        """
        if isinstance(self.pages, list):
            return self.pages
        branch = gender_branch(selected_gender)
        if branch not in self.pages:
            logger.warning("Story has no '%s' page branch (available: %s)", branch, sorted(self.pages))
            return []
        return self.pages[branch]

    def page_image_override(self, index: int) -> str | None:
        return self.image_state.page_override(index) if self.image_state else None

    def cover_image_override(self) -> str | None:
        return self.image_state.cover_override() if self.image_state else None
