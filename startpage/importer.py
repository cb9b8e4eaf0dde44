"""Import bookmark exports into the link store or the RC file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from .normaliser import ImportStats, generate_stats, process_bookmarks
from .parser import ImportFailedError, find_system_bookmarks, parser_for_path

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable

    from .models import AppendResult, LinkDraft
    from .parser import BookmarkSource

LOGGER = logging.getLogger(__name__)


class NoBookmarksError(ImportFailedError):
    """Raised when a source contains no usable bookmarks."""


@dataclass(slots=True)
class ImportResult:
    """Counts reported back to the caller after an import."""

    total: int
    added: int
    skipped: int
    links: list[LinkDraft] = field(default_factory=list)
    stats: ImportStats = field(default_factory=ImportStats)

    def summary(self) -> str:
        return f"{self.added} of {self.total} bookmarks imported ({self.skipped} skipped)"


class BookmarkImporter:
    """Parse, normalise and append bookmarks in one all-or-nothing step.

    Parsing and normalisation finish before the append callable is invoked, so
    a fatal error (invalid JSON, unsupported type, zero bookmarks) never leaves
    a partially applied import behind.
    """

    def __init__(self, *, include_special_folders: bool = False) -> None:
        self.include_special_folders = include_special_folders

    def prepare_file(self, path: Path) -> list[LinkDraft]:
        """Parse and normalise an export file without storing anything."""
        source = parser_for_path(path, include_special_folders=self.include_special_folders)
        return self._prepare(source, path.read_text(encoding="utf-8"), path.name)

    def prepare_text(self, text: str, filename: str) -> list[LinkDraft]:
        """Same as ``prepare_file`` for content already in memory (uploads)."""
        source = parser_for_path(
            Path(filename), include_special_folders=self.include_special_folders,
        )
        return self._prepare(source, text, filename)

    def import_file(
        self, path: Path, append: Callable[[list[LinkDraft]], AppendResult],
    ) -> ImportResult:
        """Import ``path`` through ``append`` (``LinkStore.append_links`` or ``RcFile.append``)."""
        return self.apply(self.prepare_file(path), append)

    def prepare_system(self) -> list[LinkDraft]:
        """Parse and normalise the local Chrome profile's bookmarks."""
        path = find_system_bookmarks()
        if path is None:
            msg = "No browser bookmarks found on this system"
            raise NoBookmarksError(msg)
        LOGGER.info("Using system bookmarks at %s", path)
        return self.prepare_file(path)

    def import_system(self, append: Callable[[list[LinkDraft]], AppendResult]) -> ImportResult:
        """Import the local Chrome profile's bookmarks."""
        return self.apply(self.prepare_system(), append)

    @staticmethod
    def apply(
        drafts: list[LinkDraft], append: Callable[[list[LinkDraft]], AppendResult],
    ) -> ImportResult:
        """Append prepared drafts and report the counts."""
        outcome = append(drafts)
        result = ImportResult(
            total=len(drafts),
            added=outcome.added,
            skipped=outcome.skipped,
            links=drafts,
            stats=generate_stats(drafts),
        )
        LOGGER.info("Import finished: %s", result.summary())
        return result

    @staticmethod
    def _prepare(source: BookmarkSource, text: str, label: str) -> list[LinkDraft]:
        raw_bookmarks = source.parse(text)
        LOGGER.debug("Parsed %d raw bookmarks from %s", len(raw_bookmarks), label)
        drafts = process_bookmarks(raw_bookmarks) if raw_bookmarks else []
        if not drafts:
            msg = f"No valid bookmarks found in {label}"
            raise NoBookmarksError(msg)
        return drafts
