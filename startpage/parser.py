"""Parse browser bookmark exports (Netscape HTML, Chrome JSON) into raw records."""

from __future__ import annotations

import json
import logging
import re
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from bs4 import BeautifulSoup, Comment, Tag

from .models import RawBookmark
from .tags import is_special_folder

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterator

    from bs4 import PageElement

LOGGER = logging.getLogger(__name__)

_HTTP_HREF_RE = re.compile(r"^https?://", re.IGNORECASE)


class ImportFailedError(ValueError):
    """Raised when a bookmark source cannot be imported at all."""


class BookmarkFormatError(ImportFailedError):
    """Raised when a bookmark document is syntactically invalid."""


class UnsupportedFormatError(ImportFailedError):
    """Raised for files that are neither HTML nor JSON bookmark exports."""


class BookmarkSource(Protocol):
    """Anything that turns an export document into raw bookmark records."""

    def parse(self, text: str) -> list[RawBookmark]:
        """Return bookmarks in document order."""
        ...


class NetscapeHtmlParser:
    """Parser for the classic ``<DL>/<DT>/<H3>/<A>`` bookmark export.

    include_special_folders: when False, browser container folders such as
    "Bookmarks Bar" are left out of ``folder_path`` while their children are
    still collected.
    """

    def __init__(self, *, include_special_folders: bool = False) -> None:
        self.include_special_folders = include_special_folders

    def parse(self, text: str) -> list[RawBookmark]:
        soup = BeautifulSoup(text, "html.parser")
        root_dl = soup.find("dl")
        if not isinstance(root_dl, Tag):
            LOGGER.warning("Bookmark export is missing <DL> root element")
            return []
        bookmarks = self._walk(root_dl)
        LOGGER.info("Extracted %d bookmark entries from HTML export", len(bookmarks))
        return bookmarks

    def _walk(self, root: Tag) -> list[RawBookmark]:
        # html.parser leaves <DT> open, so depth grows by one per entry.
        found: list[RawBookmark] = []
        stack: list[tuple[Iterator[PageElement], tuple[str, ...]]] = [(iter(root.children), ())]
        while stack:
            children, folder_path = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                continue
            if not isinstance(child, Tag):
                continue
            if child.name == "a":
                bookmark = _bookmark_from_anchor(child, folder_path)
                if bookmark is not None:
                    found.append(bookmark)
            elif child.name == "h3":
                folder_list = _folder_list(child)
                if folder_list is None:
                    LOGGER.debug("Folder heading %r has no bookmark list", child.get_text(strip=True))
                    continue
                stack.append((iter(folder_list.children), self._nested_path(child, folder_path)))
            elif child.name == "dl" and _owning_heading(child) is not None:
                # Reached through its heading.
                continue
            else:
                stack.append((iter(child.children), folder_path))
        return found

    def _nested_path(self, heading: Tag, folder_path: tuple[str, ...]) -> tuple[str, ...]:
        name = heading.get_text().strip()
        if not name or self._elides(heading, name):
            return folder_path
        return (*folder_path, name)

    def _elides(self, heading: Tag, name: str) -> bool:
        if self.include_special_folders:
            return False
        return is_special_folder(name) or heading.has_attr("personal_toolbar_folder")


class ChromeJsonParser:
    """Parser for Chrome's ``{"roots": {...}}`` bookmark JSON."""

    def parse(self, text: str) -> list[RawBookmark]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            msg = f"Invalid bookmark JSON format: {exc.msg}"
            raise BookmarkFormatError(msg) from exc

        roots = data.get("roots") if isinstance(data, dict) else None
        if not isinstance(roots, dict):
            LOGGER.warning("Bookmark JSON has no 'roots' object; nothing to import")
            return []

        bookmarks: list[RawBookmark] = []
        for role, root in roots.items():
            if not isinstance(root, dict) or not isinstance(root.get("children"), list):
                LOGGER.debug("Skipping bookmark root %r without children", role)
                continue
            root_name = root.get("name")
            root_path = (str(root_name),) if root_name else ()
            for child in root["children"]:
                bookmarks.extend(_walk_node(child, root_path))

        LOGGER.info("Extracted %d bookmark entries from JSON export", len(bookmarks))
        return bookmarks


def parser_for_path(path: Path, *, include_special_folders: bool = False) -> BookmarkSource:
    """Pick the parser matching the export file's extension."""
    suffix = path.suffix.lower()
    if suffix in {".html", ".htm"}:
        return NetscapeHtmlParser(include_special_folders=include_special_folders)
    if suffix == ".json" or (not suffix and path.name == "Bookmarks"):
        return ChromeJsonParser()
    msg = f"Unsupported bookmark file type: {path.name}"
    raise UnsupportedFormatError(msg)


def parse_bookmark_file(path: Path, *, include_special_folders: bool = False) -> list[RawBookmark]:
    """Parse an export file from disk into raw bookmark records."""
    LOGGER.debug("Parsing bookmark export from %s", path)
    source = parser_for_path(path, include_special_folders=include_special_folders)
    return source.parse(path.read_text(encoding="utf-8"))


def find_system_bookmarks(home: Path | None = None, platform: str | None = None) -> Path | None:
    """Locate the default Chrome profile's ``Bookmarks`` file, if any."""
    base = home or Path.home()
    current = platform or sys.platform
    if current == "darwin":
        candidates = [base / "Library/Application Support/Google/Chrome/Default/Bookmarks"]
    elif current == "win32":
        candidates = [base / "AppData/Local/Google/Chrome/User Data/Default/Bookmarks"]
    else:
        candidates = [
            base / ".config/google-chrome/Default/Bookmarks",
            base / ".config/chromium/Default/Bookmarks",
        ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    LOGGER.debug("No Chrome bookmarks file found under %s", base)
    return None


def _walk_node(node: object, folder_path: tuple[str, ...]) -> list[RawBookmark]:
    if not isinstance(node, dict):
        return []
    kind = node.get("type")
    if kind == "url":
        return [
            RawBookmark(
                name=str(node.get("name") or ""),
                url=str(node.get("url") or ""),
                folder_path=folder_path,
                description=_meta_description(node),
                add_date=_text_or_none(node.get("date_added")),
            ),
        ]
    children = node.get("children")
    if kind == "folder" and isinstance(children, list):
        nested_path = (*folder_path, str(node.get("name") or ""))
        return [bookmark for child in children for bookmark in _walk_node(child, nested_path)]
    return []


def _meta_description(node: dict[str, object]) -> str:
    meta = node.get("meta_info")
    if isinstance(meta, dict):
        description = meta.get("description")
        if isinstance(description, str):
            return description.strip()
    return ""


def _text_or_none(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _bookmark_from_anchor(anchor: Tag, folder_path: tuple[str, ...]) -> RawBookmark | None:
    href_value = anchor.get("href")
    if not isinstance(href_value, str):
        LOGGER.debug("Skipping anchor without textual href")
        return None

    href = href_value.strip()
    title = anchor.get_text().strip()
    if not href or not title:
        LOGGER.debug("Skipping anchor with empty href or title")
        return None
    if not _HTTP_HREF_RE.match(href):
        LOGGER.debug("Skipping non-http bookmark %s", href[:40])
        return None

    return RawBookmark(
        name=title,
        url=href,
        folder_path=folder_path,
        description=_description_for(anchor),
        add_date=_attribute(anchor, "add_date"),
        last_modified=_attribute(anchor, "last_modified"),
        icon=_attribute(anchor, "icon"),
    )


def _attribute(tag: Tag, name: str) -> str | None:
    value = tag.get(name)
    return value if isinstance(value, str) and value else None


def _description_for(anchor: Tag) -> str:
    sibling = anchor.find_next_sibling()
    if sibling is None and anchor.parent is not None and anchor.parent.name == "dt":
        sibling = anchor.parent.find_next_sibling()
    if sibling is None or sibling.name != "dd":
        return ""
    return _leading_text(sibling)


def _leading_text(tag: Tag) -> str:
    # html.parser never closes <DD>, so later entries may be nested inside it.
    parts: list[str] = []
    for node in tag.children:
        if isinstance(node, Tag):
            break
        if isinstance(node, Comment):
            continue
        parts.append(str(node))
    return " ".join("".join(parts).split())


def _folder_list(heading: Tag) -> Tag | None:
    sibling = heading.find_next_sibling()
    if sibling is None and heading.parent is not None and heading.parent.name == "dt":
        sibling = heading.parent.find_next_sibling()
    if sibling is not None and sibling.name == "dd":
        nested = sibling.find("dl", recursive=False)
        sibling = nested if isinstance(nested, Tag) else sibling.find_next_sibling()
    if sibling is not None and sibling.name == "dl":
        return sibling
    return None


def _owning_heading(folder_list: Tag) -> Tag | None:
    candidates: list[Tag | None] = []
    previous = folder_list.find_previous_sibling()
    if previous is not None:
        candidates.append(previous)
        if previous.name == "dd":
            candidates.append(previous.find_previous_sibling())
    parent = folder_list.parent
    if parent is not None and parent.name == "dd":
        candidates.append(parent.find_previous_sibling())

    for candidate in candidates:
        if candidate is None:
            continue
        heading = candidate if candidate.name == "h3" else None
        if candidate.name == "dt":
            found = candidate.find("h3", recursive=False)
            heading = found if isinstance(found, Tag) else None
        if heading is not None and _folder_list(heading) is folder_list:
            return heading
    return None
