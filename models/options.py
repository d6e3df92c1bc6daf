import re
from typing import Any, Literal

from pydantic import Field, field_validator

from models.book_format import PAPER_SIZES_MM
from models.story import CamelModel

# A CSS length as Chromium's page.pdf accepts it; bare numbers are pixels
_LENGTH_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*(px|in|cm|mm)?$")


class Margin(CamelModel):
    top: str = "0mm"
    right: str = "0mm"
    bottom: str = "0mm"
    left: str = "0mm"

    @field_validator("top", "right", "bottom", "left", mode="before")
    @classmethod
    def css_length(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        match = _LENGTH_RE.match(v.strip().lower()) if isinstance(v, str) else None
        if not match:
            raise ValueError(f"margin must be a length in px, in, cm or mm, got {v!r}")
        number, unit = match.groups()
        return f"{number}{unit or 'px'}"

    @classmethod
    def uniform(cls, value: str) -> "Margin":
        return cls(top=value, right=value, bottom=value, left=value)


class RenderOptions(CamelModel):
    """Caller-supplied render options. Unset fields take the per-variant defaults."""
    optimize_for_email: bool = False
    format: str = "A4"
    orientation: Literal["portrait", "landscape"] = "portrait"
    margin: Margin = Field(default_factory=Margin)

    @field_validator("format")
    @classmethod
    def known_paper_format(cls, v: str) -> str:
        if v.strip().lower() not in PAPER_SIZES_MM:
            raise ValueError(f"unknown paper format {v!r}")
        return v.strip()

    @property
    def landscape(self) -> bool:
        return self.orientation == "landscape"

    def with_defaults(self, defaults: "RenderOptions") -> "RenderOptions":
        """Overlay the fields the caller actually set onto ``defaults``."""
        explicit = {name: getattr(self, name) for name in self.model_fields_set}
        return defaults.model_copy(update=explicit)


class RenderRequest(CamelModel):
    """JSON body shared by the three generate endpoints.

    Nothing is required at the schema level: missing fields are reported by
    the service as a client error naming the required set.
    """
    story: dict[str, Any] | None = None
    selected_story: dict[str, Any] | None = None
    child_name: str | None = None
    child_age: str | int | None = None
    selected_gender: str | None = None
    options: dict[str, Any] | None = None

    @property
    def effective_story(self) -> dict[str, Any] | None:
        return self.story or self.selected_story

    @property
    def age(self) -> str | None:
        if self.child_age is None or self.child_age == "":
            return None
        return str(self.child_age)
