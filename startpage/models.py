"""Data models for the link import and reconciliation pipeline."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

from .urls import has_http_scheme, is_valid_url, url_key


def _empty_str_list() -> list[str]:
    return []


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def new_link_id() -> str:
    """Opaque, never reused link identifier."""
    return uuid.uuid4().hex


def _clean_tag_list(value: object) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    cleaned = [str(tag).strip() for tag in value if tag is not None]
    return list(dict.fromkeys(tag for tag in cleaned if tag))


@dataclass(slots=True, frozen=True)
class RawBookmark:
    """Bookmark exactly as a source parser found it, before normalisation."""

    name: str
    url: str
    folder_path: tuple[str, ...] = ()
    description: str = ""
    add_date: str | None = None
    last_modified: str | None = None
    icon: str | None = None


@dataclass(slots=True)
class LinkDraft:
    """A link validated at the import / RC boundary but not yet stored.

    ``id`` and ``order`` are assigned by the link store on insertion.
    """

    name: str
    url: str
    tags: list[str] = field(default_factory=_empty_str_list)
    description: str = ""
    source: str = "manual"
    imported_at: str | None = None
    line_number: int | None = None

    @property
    def url_key(self) -> str:
        """Case-insensitive de-duplication key (literal, no path normalisation)."""
        return url_key(self.url)

    def is_storable(self) -> bool:
        """True when the draft has a name and an http(s)-looking url."""
        return bool(self.name and self.url) and self.url_key.startswith("http")

    def to_model(self) -> LinkCandidateModel:
        """Convert the draft into the wire model used by the HTTP surface."""
        return LinkCandidateModel(
            name=self.name,
            url=self.url,
            tags=list(self.tags),
            description=self.description,
        )

    @classmethod
    def from_model(cls, model: LinkCandidateModel, source: str = "manual") -> LinkDraft:
        """Create a draft from a validated wire model."""
        return cls(
            name=model.name,
            url=model.url,
            tags=list(model.tags),
            description=model.description,
            source=source,
        )


@dataclass(slots=True, frozen=True)
class AppendResult:
    """Outcome of an append-mode reconciliation."""

    added: int
    skipped: int

    @property
    def total(self) -> int:
        return self.added + self.skipped


class LinkCandidateModel(BaseModel):
    """Pydantic model for a ``{name, url, tags, description}`` candidate."""

    name: str = ""
    url: str = ""
    tags: list[str] = Field(default_factory=list)
    description: str = ""

    @field_validator("name", "url", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return "" if value is None else str(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalise_tags(cls, value: object) -> list[str]:
        return _clean_tag_list(value)


class CanonicalLink(BaseModel):
    """A stored link. Construction and assignment are validated."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_link_id, frozen=True)
    name: str
    url: str
    tags: list[str] = Field(default_factory=list)
    description: str = ""
    order: int = 0
    favicon: str | None = None
    click_count: int = 0
    last_clicked: str | None = None
    created_at: str = Field(default_factory=utc_now_iso, frozen=True)

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            msg = "Link name must not be empty"
            raise ValueError(msg)
        return name

    @field_validator("url")
    @classmethod
    def _require_absolute_http(cls, value: str) -> str:
        url = value.strip()
        if not has_http_scheme(url) or not is_valid_url(url):
            msg = f"Link url must be an absolute http(s) url: {value!r}"
            raise ValueError(msg)
        return url

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: object) -> list[str]:
        return _clean_tag_list(value)

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value: object) -> str:
        return "" if value is None else str(value)

    @property
    def url_key(self) -> str:
        """Case-insensitive de-duplication key."""
        return url_key(self.url)


class CanonicalLinkListModel(RootModel[list[CanonicalLink]]):
    """Root list model for the JSON snapshot (strict all-or-nothing validation)."""
