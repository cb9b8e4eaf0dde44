"""Normalise raw bookmarks into de-duplicated link drafts."""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from .config import MAX_NAME_LENGTH
from .models import LinkDraft, utc_now_iso
from .tags import build_tags, is_hierarchical
from .urls import normalize_url

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable

    from .models import RawBookmark

LOGGER = logging.getLogger(__name__)

IMPORT_SOURCE = "import"

_CONTROL_WHITESPACE_RE = re.compile(r"[\r\n\t]")
_WHITESPACE_RUN_RE = re.compile(r"\s+")


def sanitise_name(name: str) -> str:
    """Flatten control whitespace, collapse runs of spaces, trim and cap length."""
    flattened = _CONTROL_WHITESPACE_RE.sub(" ", name)
    collapsed = _WHITESPACE_RUN_RE.sub(" ", flattened).strip()
    return collapsed[:MAX_NAME_LENGTH]


def process_bookmarks(raw_bookmarks: Iterable[RawBookmark]) -> list[LinkDraft]:
    """Convert raw records into import drafts, keeping the first of each url.

    Records without a name or url are dropped. De-duplication compares the
    lower-cased normalised url and is stable: traversal order decides which
    duplicate survives.
    """
    imported_at = utc_now_iso()
    seen: set[str] = set()
    drafts: list[LinkDraft] = []
    dropped = 0
    duplicates = 0

    for bookmark in raw_bookmarks:
        if not bookmark.url or not bookmark.name:
            dropped += 1
            continue
        name = sanitise_name(bookmark.name)
        if not name:
            dropped += 1
            continue
        url = normalize_url(bookmark.url)
        key = url.lower()
        if key in seen:
            duplicates += 1
            continue
        seen.add(key)
        drafts.append(
            LinkDraft(
                name=name,
                url=url,
                tags=build_tags(bookmark.folder_path),
                description=bookmark.description or "",
                source=IMPORT_SOURCE,
                imported_at=imported_at,
            ),
        )

    LOGGER.info(
        "Normalised %d bookmarks (%d incomplete dropped, %d duplicate urls removed)",
        len(drafts),
        dropped,
        duplicates,
    )
    return drafts


@dataclass(slots=True)
class ImportStats:
    """Summary of an import batch for previews and reports."""

    total: int = 0
    by_tag: Counter[str] = field(default_factory=Counter)
    by_domain: Counter[str] = field(default_factory=Counter)
    hierarchical_tags: list[str] = field(default_factory=list)

    def top_tags(self, limit: int = 10) -> list[tuple[str, int]]:
        """Most frequent tags, most common first."""
        return self.by_tag.most_common(limit)

    def as_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "byTag": dict(self.by_tag),
            "byDomain": dict(self.by_domain),
            "hierarchicalTags": list(self.hierarchical_tags),
        }


def generate_stats(drafts: Iterable[LinkDraft]) -> ImportStats:
    """Count links per tag and per domain."""
    stats = ImportStats()
    for draft in drafts:
        stats.total += 1
        for tag in draft.tags:
            stats.by_tag[tag] += 1
            if is_hierarchical(tag) and tag not in stats.hierarchical_tags:
                stats.hierarchical_tags.append(tag)
        try:
            domain = urlsplit(draft.url).hostname
        except ValueError:
            domain = None
        if domain:
            stats.by_domain[domain] += 1
    return stats
