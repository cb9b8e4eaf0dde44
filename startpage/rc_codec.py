"""Encode and decode the line-oriented RC link file.

Each data line is ``name,url,tag1,tag2,...``. Blank lines and lines starting
with ``#`` are ignored. Only flat tags are written: hierarchical tags such as
``"Dev > Frontend"`` are dropped on encode, so they do not survive a round trip.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import LinkDraft
from .tags import flat_tags
from .urls import ensure_scheme, is_valid_url, url_key

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable

    from .models import CanonicalLink

LOGGER = logging.getLogger(__name__)

RC_SOURCE = "rc_file"
FIELD_SEPARATOR = ","
_COMMENT_PREFIX = "#"

# Name and url are mandatory; anything after them is a tag.
_MIN_FIELDS = 2


def _is_data_line(stripped: str) -> bool:
    return bool(stripped) and not stripped.startswith(_COMMENT_PREFIX)


def parse_line(line: str, line_number: int | None = None) -> LinkDraft | None:
    """Decode one RC line; returns None for comments, blanks and invalid lines."""
    stripped = line.strip()
    if not _is_data_line(stripped):
        return None
    parts = [part.strip() for part in stripped.split(FIELD_SEPARATOR)]
    if len(parts) < _MIN_FIELDS:
        LOGGER.debug("RC line %s has fewer than two fields; skipped", line_number)
        return None
    name, url, *tag_parts = parts
    if not name or not is_valid_url(url):
        LOGGER.debug("RC line %s has no name or an invalid url; skipped", line_number)
        return None
    return LinkDraft(
        name=name,
        url=ensure_scheme(url),
        tags=[tag for tag in tag_parts if tag],
        source=RC_SOURCE,
        line_number=line_number,
    )


def to_line(link: LinkDraft | CanonicalLink) -> str:
    """Encode a link as ``name,url,flat-tags...``.

    Commas in the url are percent-encoded and a leading ``#`` is dropped from
    the name, so every encoded link decodes back as a data line.
    """
    url = link.url.strip().replace(FIELD_SEPARATOR, "%2C")
    safe_name = link.name.replace(FIELD_SEPARATOR, " ").strip().lstrip(_COMMENT_PREFIX).strip()
    safe_tags = [tag.replace(FIELD_SEPARATOR, " ").strip() for tag in flat_tags(link.tags)]
    return FIELD_SEPARATOR.join([safe_name or url, url, *(tag for tag in safe_tags if tag)])


def parse_rc(content: str) -> list[LinkDraft]:
    """Decode every valid line of an RC file, keeping 1-based line numbers."""
    drafts: list[LinkDraft] = []
    data_lines = 0
    for index, line in enumerate(content.split("\n"), start=1):
        if _is_data_line(line.strip()):
            data_lines += 1
        draft = parse_line(line, line_number=index)
        if draft is not None:
            drafts.append(draft)
    if data_lines != len(drafts):
        LOGGER.info("Skipped %d invalid RC lines", data_lines - len(drafts))
    return drafts


def dump_rc(links: Iterable[LinkDraft | CanonicalLink]) -> str:
    """Encode links as RC content with a single trailing newline."""
    lines = [to_line(link) for link in links]
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def existing_url_keys(content: str) -> set[str]:
    """Lower-cased url field of every data line, used to seed append de-duplication."""
    keys: set[str] = set()
    for line in content.split("\n"):
        stripped = line.strip()
        if not _is_data_line(stripped):
            continue
        parts = stripped.split(FIELD_SEPARATOR)
        if len(parts) >= _MIN_FIELDS:
            keys.add(url_key(parts[1]))
    return keys
