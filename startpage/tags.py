"""Derive flat and hierarchical tags from bookmark folder paths."""

from __future__ import annotations

from typing import TYPE_CHECKING

from attrs import Factory, define

from .config import HIERARCHY_SEPARATOR, SPECIAL_FOLDERS, UNCLASSIFIED_TAG

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable, Mapping, Sequence


def is_special_folder(name: str) -> bool:
    """Return True for browser container folders such as "Bookmarks Bar"."""
    return name.strip() in SPECIAL_FOLDERS


def is_hierarchical(tag: str) -> bool:
    """Return True for ancestry tags of the form ``"A > B"``."""
    return HIERARCHY_SEPARATOR in tag


def flat_tags(tags: Iterable[str]) -> list[str]:
    """Keep only the non-empty tags without a hierarchy separator."""
    return [tag for tag in tags if isinstance(tag, str) and tag and not is_hierarchical(tag)]


def build_tags(folder_path: Sequence[str]) -> list[str]:
    """Turn a root-first folder path into a de-duplicated tag list.

    Every usable folder name becomes a flat tag; every folder below the root
    also yields a hierarchical tag joining its ancestry with ``" > "``. Special
    container folders never become tags and a special root is stripped from
    hierarchical tags too. Returns ``[UNCLASSIFIED_TAG]`` when nothing remains.

    >>> build_tags(["Dev", "Frontend"])
    ['Dev', 'Frontend', 'Dev > Frontend']
    """
    segments = [segment.strip() for segment in folder_path]
    start = 1 if segments and is_special_folder(segments[0]) else 0

    tags: list[str] = []
    for index, segment in enumerate(segments):
        if not segment or is_special_folder(segment):
            continue
        tags.append(segment)
        if index == 0:
            continue
        ancestry = [part for part in segments[start : index + 1] if part]
        if len(ancestry) > 1:
            tags.append(HIERARCHY_SEPARATOR.join(ancestry))

    deduplicated = list(dict.fromkeys(tags))
    return deduplicated or [UNCLASSIFIED_TAG]


def sort_tags(tags: Iterable[str]) -> list[str]:
    """Flat tags alphabetically, then hierarchical tags by depth and name."""
    unique = list(dict.fromkeys(tags))
    simple = sorted(tag for tag in unique if not is_hierarchical(tag))
    nested = sorted(
        (tag for tag in unique if is_hierarchical(tag)),
        key=lambda tag: (len(tag.split(HIERARCHY_SEPARATOR)), tag.lower()),
    )
    return simple + nested


@define(slots=True)
class TagTreeNode:
    """Node of the nested tag view built from hierarchical tags."""

    name: str
    full_path: str
    count: int = 0
    children: list[TagTreeNode] = Factory(list)

    def get_or_create_child(self, name: str, full_path: str) -> TagTreeNode:
        """Get or create a child node with the given name."""
        for child in self.children:
            if child.name == name:
                return child
        new_child = TagTreeNode(name=name, full_path=full_path)
        self.children.append(new_child)
        return new_child


def build_tag_tree(
    tags: Iterable[str], counts: Mapping[str, int] | None = None,
) -> list[TagTreeNode]:
    """Build a forest of tag nodes; ``"A > B"`` nests B under A.

    ``counts`` maps a tag (flat or hierarchical) to the number of links carrying
    it and fills the matching node's ``count``.
    """
    root = TagTreeNode(name="", full_path="")
    for tag in tags:
        parts = [part.strip() for part in tag.split(HIERARCHY_SEPARATOR) if part.strip()]
        node = root
        for depth, part in enumerate(parts, start=1):
            full_path = HIERARCHY_SEPARATOR.join(parts[:depth])
            node = node.get_or_create_child(part, full_path)
            if counts is not None and full_path in counts:
                node.count = counts[full_path]
    return root.children
