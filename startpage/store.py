"""In-memory link store: reconciliation, editing and queries."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .models import (
    AppendResult,
    CanonicalLink,
    CanonicalLinkListModel,
    LinkDraft,
    utc_now_iso,
)
from .rc_codec import dump_rc, parse_rc
from .tags import build_tag_tree, sort_tags

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable
    from pathlib import Path

    from .tags import TagTreeNode

LOGGER = logging.getLogger(__name__)

ALL_TAGS = "all"

_EDITABLE_FIELDS = frozenset({"name", "url", "tags", "description", "favicon"})


class DuplicateLinkError(ValueError):
    """Raised when a change would store the same url twice."""


class LinkStore:
    """Sole owner of the link collection.

    Every bulk operation keeps lower-cased urls unique. ``replace_links`` is used
    when the authoritative RC file is reloaded; ``append_links`` when bookmarks
    are imported on top of what is already stored.
    """

    def __init__(self, links: Iterable[CanonicalLink] = ()) -> None:
        self._links: list[CanonicalLink] = list(links)

    def __len__(self) -> int:
        return len(self._links)

    @property
    def links(self) -> list[CanonicalLink]:
        """Snapshot of the stored links in insertion order."""
        return list(self._links)

    def get(self, link_id: str) -> CanonicalLink | None:
        return next((link for link in self._links if link.id == link_id), None)

    def url_keys(self) -> set[str]:
        return {link.url_key for link in self._links}

    # --- reconciliation -----------------------------------------------------------------

    def replace_links(self, batch: Iterable[LinkDraft]) -> int:
        """Discard the collection and rebuild it from ``batch``.

        Entries need a name and an http(s) url; the first entry per url wins.
        Survivors get fresh ids, sequential ``order`` from 0 and reset counters.
        """
        created_at = utc_now_iso()
        seen: set[str] = set()
        rebuilt: list[CanonicalLink] = []
        for draft in batch:
            if not draft.is_storable():
                continue
            key = draft.url_key
            if key in seen:
                continue
            link = self._build(draft, order=len(rebuilt), created_at=created_at)
            if link is None:
                continue
            seen.add(key)
            rebuilt.append(link)

        self._links = rebuilt
        LOGGER.info("Replaced link collection with %d links", len(rebuilt))
        return len(rebuilt)

    def append_links(self, batch: Iterable[LinkDraft]) -> AppendResult:
        """Append drafts whose url is not stored yet; never touches existing links."""
        keys = self.url_keys()
        added = 0
        skipped = 0
        for draft in batch:
            key = draft.url_key
            link = None
            if draft.is_storable() and key not in keys:
                link = self._build(draft, order=len(self._links))
            if link is None:
                skipped += 1
                continue
            self._links.append(link)
            keys.add(key)
            added += 1
        LOGGER.info("Appended %d links (%d skipped)", added, skipped)
        return AppendResult(added=added, skipped=skipped)

    def reload_from_rc(self, content: str) -> int:
        """Replace the collection with the contents of an RC file."""
        return self.replace_links(parse_rc(content))

    def to_rc(self) -> str:
        """Serialise the collection (in display order) as RC content."""
        return dump_rc(self.ordered())

    @staticmethod
    def _build(
        draft: LinkDraft, *, order: int, created_at: str | None = None,
    ) -> CanonicalLink | None:
        extra = {"created_at": created_at} if created_at else {}
        try:
            return CanonicalLink(
                name=draft.name,
                url=draft.url,
                tags=list(draft.tags),
                description=draft.description,
                order=order,
                **extra,
            )
        except ValidationError as exc:
            LOGGER.warning("Skipping invalid link %r: %s", draft.url, exc.errors()[0]["msg"])
            return None

    # --- single-link operations ---------------------------------------------------------

    def add_link(self, draft: LinkDraft) -> CanonicalLink:
        """Add one link at the end; raises on an invalid or duplicate url."""
        if draft.url_key in self.url_keys():
            msg = f"Link already stored: {draft.url}"
            raise DuplicateLinkError(msg)
        link = CanonicalLink(
            name=draft.name,
            url=draft.url,
            tags=list(draft.tags),
            description=draft.description,
            order=len(self._links),
        )
        self._links.append(link)
        return link

    def update_link(self, link_id: str, **changes: object) -> bool:
        """Apply edits atomically; unknown fields raise ``TypeError``."""
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            msg = f"Fields cannot be edited: {sorted(unknown)}"
            raise TypeError(msg)
        index = self._index_of(link_id)
        if index is None:
            return False

        current = self._links[index]
        updated = CanonicalLink.model_validate({**current.model_dump(), **changes})
        clash = any(
            link.url_key == updated.url_key and link.id != link_id for link in self._links
        )
        if clash:
            msg = f"Link already stored: {updated.url}"
            raise DuplicateLinkError(msg)
        self._links[index] = updated
        return True

    def apply_edit(
        self, link_id: str, *, name: str, url: str, tags: str = "", description: str = "",
    ) -> bool:
        """Apply an edit form where tags arrive as one comma-separated string."""
        return self.update_link(
            link_id,
            name=name.strip(),
            url=url.strip(),
            tags=[tag.strip() for tag in tags.split(",") if tag.strip()],
            description=description.strip(),
        )

    def delete_link(self, link_id: str) -> bool:
        index = self._index_of(link_id)
        if index is None:
            return False
        del self._links[index]
        return True

    def delete_all(self) -> int:
        removed = len(self._links)
        self._links = []
        return removed

    def track_click(self, link_id: str) -> bool:
        link = self.get(link_id)
        if link is None:
            return False
        link.click_count += 1
        link.last_clicked = utc_now_iso()
        return True

    def reorder_link(self, link_id: str, new_index: int) -> bool:
        """Move a link to ``new_index`` and renumber ``order`` for every link."""
        index = self._index_of(link_id)
        if index is None:
            return False
        moved = self._links.pop(index)
        self._links.insert(max(0, new_index), moved)
        for position, link in enumerate(self._links):
            link.order = position
        return True

    def _index_of(self, link_id: str) -> int | None:
        for index, link in enumerate(self._links):
            if link.id == link_id:
                return index
        return None

    # --- queries ------------------------------------------------------------------------

    def ordered(self) -> list[CanonicalLink]:
        return sorted(self._links, key=lambda link: link.order)

    def filtered_links(self, tag: str = ALL_TAGS) -> list[CanonicalLink]:
        """Links carrying ``tag`` (or every link for ``"all"``), by ``order``."""
        if tag == ALL_TAGS:
            return self.ordered()
        return [link for link in self.ordered() if tag in link.tags]

    def all_tags(self) -> list[str]:
        """``"all"`` followed by flat tags, then hierarchical tags by depth."""
        return [ALL_TAGS, *sort_tags(tag for link in self._links for tag in link.tags)]

    def search(self, query: str) -> list[CanonicalLink]:
        """Case-insensitive match on name, url, tags or description."""
        needle = query.strip().lower()
        if not needle:
            return self.links
        return [
            link
            for link in self._links
            if needle in link.name.lower()
            or needle in link.url.lower()
            or any(needle in tag.lower() for tag in link.tags)
            or needle in link.description.lower()
        ]

    def tag_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for link in self._links:
            for tag in link.tags:
                counts[tag] = counts.get(tag, 0) + 1
        return counts

    def tag_tree(self) -> list[TagTreeNode]:
        """Nested tag view with the number of links carrying each tag."""
        counts = self.tag_counts()
        return build_tag_tree(sort_tags(counts), counts)

    def stats(self) -> dict[str, object]:
        tag_stats = self.tag_counts()
        most_clicked = max(self._links, key=lambda link: link.click_count, default=None)
        return {
            "total_links": len(self._links),
            "total_clicks": sum(link.click_count for link in self._links),
            "most_clicked": most_clicked.name if most_clicked is not None else None,
            "tag_stats": tag_stats,
        }

    # --- local snapshot -----------------------------------------------------------------

    def save_json(self, path: Path) -> None:
        """Write the collection to a JSON snapshot."""
        payload = [link.model_dump(mode="json") for link in self._links]
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        LOGGER.info("Wrote %d links to %s", len(payload), path)

    @classmethod
    def load_json(cls, path: Path) -> LinkStore:
        """Load a JSON snapshot; any invalid entry rejects the whole file."""
        raw_text = path.read_text(encoding="utf-8")
        try:
            list_model = CanonicalLinkListModel.model_validate_json(raw_text)
        except ValidationError as exc:
            msg = f"Invalid link snapshot {path}: {exc}"
            raise ValueError(msg) from exc
        return cls(list_model.root)
