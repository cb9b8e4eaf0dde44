"""Tests for the RC file gateway."""

from __future__ import annotations

from typing import TYPE_CHECKING

from startpage.config import UNCLASSIFIED_TAG
from startpage.models import LinkDraft, RawBookmark
from startpage.normaliser import process_bookmarks
from startpage.rc_file import RcFile

if TYPE_CHECKING:
    from pathlib import Path

CANDIDATES = [
    LinkDraft(name="GitHub", url="https://github.com", tags=["Dev", "Dev > Code"]),
    LinkDraft(name="React", url="https://react.dev", tags=["Dev"]),
]


def test_read_creates_missing_file(rc_path: Path) -> None:
    snapshot = RcFile(rc_path).read()
    if not rc_path.exists() or snapshot.content != "" or snapshot.links:
        raise AssertionError("Reading a missing RC file should create an empty one")
    if snapshot.line_count != 1:
        raise AssertionError("An empty file has one (empty) line")


def test_append_is_idempotent(rc_path: Path) -> None:
    rc_file = RcFile(rc_path)
    first = rc_file.append(CANDIDATES)
    second = rc_file.append(CANDIDATES)
    if (first.added, first.skipped) != (2, 0) or (second.added, second.skipped) != (0, 2):
        msg = f"Unexpected append results {first} / {second}"
        raise AssertionError(msg)
    expected = "GitHub,https://github.com,Dev\nReact,https://react.dev,Dev\n"
    if rc_path.read_text(encoding="utf-8") != expected:
        msg = f"Unexpected file content {rc_path.read_text(encoding='utf-8')!r}"
        raise AssertionError(msg)


def test_append_keeps_existing_lines_and_adds_newline(rc_path: Path) -> None:
    rc_path.parent.mkdir(parents=True)
    rc_path.write_text("# mine\nOld,HTTPS://GITHUB.COM", encoding="utf-8")
    result = RcFile(rc_path).append(CANDIDATES)
    if (result.added, result.skipped) != (1, 1):
        msg = f"Existing url should be skipped case-insensitively: {result}"
        raise AssertionError(msg)
    content = rc_path.read_text(encoding="utf-8")
    if content != "# mine\nOld,HTTPS://GITHUB.COM\nReact,https://react.dev,Dev\n":
        msg = f"Unexpected file content {content!r}"
        raise AssertionError(msg)


def test_append_skips_unstorable_candidates(rc_path: Path) -> None:
    result = RcFile(rc_path).append(
        [LinkDraft(name="", url="https://a.com"), LinkDraft(name="Mail", url="mailto:x@y.z")],
    )
    if result.added or result.skipped != 2:  # noqa: PLR2004
        msg = f"Unexpected result {result}"
        raise AssertionError(msg)


def test_write_backs_up_previous_content(rc_path: Path) -> None:
    rc_file = RcFile(rc_path)
    if rc_file.write("A,https://a.com\n") is not None:
        raise AssertionError("The first write has nothing to back up")
    backup = rc_file.write("B,https://b.com\n")
    if backup is None or backup.read_text(encoding="utf-8") != "A,https://a.com\n":
        raise AssertionError("A full write should keep the previous content")
    if not backup.name.startswith(".myweb.rc.backup."):
        msg = f"Unexpected backup name {backup.name}"
        raise AssertionError(msg)
    if [d.name for d in rc_file.read().links] != ["B"]:
        raise AssertionError("The new content should be readable")


def test_append_is_idempotent_for_tricky_links(rc_path: Path) -> None:
    drafts = process_bookmarks(
        [
            RawBookmark(name="Map", url="https://www.google.com/maps/@37.7,-122.4,12z"),
            RawBookmark(name="#channel", url="https://x.com"),
        ],
    )
    rc_file = RcFile(rc_path)
    first = rc_file.append(drafts)
    second = rc_file.append(drafts)
    if (first.added, second.added, second.skipped) != (2, 0, 2):
        msg = f"Unexpected append results {first} / {second}"
        raise AssertionError(msg)
    decoded = [(d.name, d.tags) for d in rc_file.read().links]
    if decoded != [("Map", [UNCLASSIFIED_TAG]), ("channel", [UNCLASSIFIED_TAG])]:
        msg = f"Links should decode intact: {decoded}"
        raise AssertionError(msg)
