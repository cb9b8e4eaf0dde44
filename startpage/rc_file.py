"""Read, overwrite and append to the RC link file on disk."""

from __future__ import annotations

import logging
import shutil
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from .models import AppendResult
from .rc_codec import existing_url_keys, parse_rc, to_line

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable
    from pathlib import Path

    from .models import LinkDraft

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RcSnapshot:
    """Content of the RC file at the time it was read."""

    path: Path
    content: str
    links: list[LinkDraft]
    last_modified: str
    line_count: int


class RcFile:
    """Gateway to one RC file.

    Read, write and append hold a per-instance lock so a reload-driven full
    write and an import append from the same process never interleave. Other
    processes writing the same file are not coordinated.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def ensure_exists(self, initial_content: str = "") -> None:
        """Create the file (and its directory) when it is missing."""
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(initial_content, encoding="utf-8")
        LOGGER.info("Created RC file %s", self.path)

    def read(self) -> RcSnapshot:
        """Read and decode the file, creating an empty one when missing."""
        with self._lock:
            self.ensure_exists()
            content = self.path.read_text(encoding="utf-8")
            modified = self.path.stat().st_mtime
        links = parse_rc(content)
        LOGGER.debug("Read %d links from %s", len(links), self.path)
        return RcSnapshot(
            path=self.path,
            content=content,
            links=links,
            last_modified=datetime.fromtimestamp(modified, tz=timezone.utc).isoformat(),
            line_count=len(content.split("\n")),
        )

    def write(self, content: str) -> Path | None:
        """Replace the whole file, keeping a timestamped copy of the old one.

        Returns the backup path, or None when there was nothing to back up.
        """
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            backup = self._backup()
            self.path.write_text(content, encoding="utf-8")
        LOGGER.info("Wrote RC file %s (%d bytes)", self.path, len(content))
        return backup

    def append(self, candidates: Iterable[LinkDraft]) -> AppendResult:
        """Append candidates whose url is not in the file yet.

        Existing lines are never removed or reordered. Candidates without a
        name or an http(s) url, and urls already present, count as skipped.
        """
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            existing = self.path.read_text(encoding="utf-8") if self.path.exists() else ""
            keys = existing_url_keys(existing)

            new_lines: list[str] = []
            total = 0
            for candidate in candidates:
                total += 1
                if not candidate.is_storable() or candidate.url_key in keys:
                    continue
                new_lines.append(to_line(candidate))
                keys.add(candidate.url_key)

            if new_lines:
                prefix = "\n" if existing and not existing.endswith("\n") else ""
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(prefix + "\n".join(new_lines) + "\n")

        result = AppendResult(added=len(new_lines), skipped=total - len(new_lines))
        LOGGER.info(
            "Appended %d links to %s (%d skipped)", result.added, self.path, result.skipped,
        )
        return result

    def _backup(self) -> Path | None:
        if not self.path.exists():
            return None
        backup_path = self.path.with_name(f"{self.path.name}.backup.{int(time.time() * 1000)}")
        shutil.copyfile(self.path, backup_path)
        LOGGER.debug("Backed up %s to %s", self.path, backup_path)
        return backup_path
