"""Tests for the in-memory link store."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from startpage.models import LinkDraft
from startpage.rc_codec import dump_rc, parse_rc
from startpage.store import ALL_TAGS, DuplicateLinkError, LinkStore

if TYPE_CHECKING:
    from pathlib import Path


def _draft(name: str, url: str, *tags: str) -> LinkDraft:
    return LinkDraft(name=name, url=url, tags=list(tags))


BATCH = [
    _draft("GitHub", "https://github.com", "Dev"),
    _draft("React", "https://react.dev", "Dev", "Dev > Frontend"),
    _draft("News", "https://news.ycombinator.com", "Read"),
]


def test_replace_links_is_idempotent() -> None:
    store = LinkStore()
    first = store.replace_links(BATCH)
    first_ids = {link.id for link in store.links}
    second = store.replace_links(BATCH)
    if first != second or first != len(BATCH):
        msg = f"Replace should be stable: {first} vs {second}"
        raise AssertionError(msg)
    if [link.order for link in store.links] != [0, 1, 2]:
        raise AssertionError("Order should be sequential from zero")
    if first_ids & {link.id for link in store.links}:
        raise AssertionError("Every replace assigns fresh ids")


def test_replace_links_filters_and_deduplicates() -> None:
    store = LinkStore()
    count = store.replace_links(
        [
            _draft("A", "https://a.com"),
            _draft("A again", "HTTPS://A.COM"),
            _draft("No name", ""),
            _draft("", "https://b.com"),
            _draft("Mail", "mailto:me@example.com"),
        ],
    )
    if count != 1 or store.links[0].name != "A":
        msg = f"Only the first valid link should survive: {store.links}"
        raise AssertionError(msg)


def test_trailing_slash_variants_do_not_collide() -> None:
    store = LinkStore()
    count = store.replace_links([_draft("Bare", "https://a.com"), _draft("Slash", "https://a.com/")])
    if count != 2:  # noqa: PLR2004
        raise AssertionError("Url comparison is literal apart from case")


def test_append_links_is_idempotent() -> None:
    store = LinkStore()
    first = store.append_links(BATCH)
    second = store.append_links(BATCH)
    if (first.added, first.skipped) != (3, 0):
        msg = f"Unexpected first append {first}"
        raise AssertionError(msg)
    if (second.added, second.skipped) != (0, 3):
        msg = f"Unexpected second append {second}"
        raise AssertionError(msg)
    if len(store) != len(BATCH):
        raise AssertionError("Appending the same batch twice must not grow the store")


def test_reload_and_dump_rc() -> None:
    store = LinkStore()
    store.reload_from_rc("B,https://b.com,Two\n# comment\nA,https://a.com,One\n")
    if store.to_rc() != "B,https://b.com,Two\nA,https://a.com,One\n":
        msg = f"Unexpected RC output {store.to_rc()!r}"
        raise AssertionError(msg)


def test_add_link_rejects_duplicates_and_invalid_urls() -> None:
    store = LinkStore()
    store.add_link(_draft("A", "https://a.com"))
    with pytest.raises(DuplicateLinkError):
        store.add_link(_draft("Also A", "https://A.com"))
    with pytest.raises(ValidationError):
        store.add_link(_draft("Relative", "a.com"))
    with pytest.raises(ValidationError):
        store.add_link(_draft("   ", "https://c.com"))


def test_update_link_is_atomic() -> None:
    store = LinkStore()
    first = store.add_link(_draft("A", "https://a.com"))
    store.add_link(_draft("B", "https://b.com"))
    with pytest.raises(DuplicateLinkError):
        store.update_link(first.id, url="https://b.com")
    with pytest.raises(ValidationError):
        store.update_link(first.id, name="Renamed", url="ftp://a.com")
    with pytest.raises(TypeError):
        store.update_link(first.id, id="other")
    current = store.get(first.id)
    if current is None or (current.name, current.url) != ("A", "https://a.com"):
        msg = f"Failed edits must leave the link unchanged: {current}"
        raise AssertionError(msg)
    if store.update_link("missing", name="X"):
        raise AssertionError("Unknown ids report False")


def test_apply_edit_splits_tags() -> None:
    store = LinkStore()
    link = store.add_link(_draft("A", "https://a.com"))
    store.apply_edit(link.id, name=" Renamed ", url="https://a.com", tags="Dev, Tools ,,")
    updated = store.get(link.id)
    if updated is None or updated.name != "Renamed" or updated.tags != ["Dev", "Tools"]:
        msg = f"Unexpected edit result {updated}"
        raise AssertionError(msg)
    if updated.id != link.id or updated.created_at != link.created_at:
        raise AssertionError("Edits keep the identity fields")


def test_delete_click_and_reorder() -> None:
    store = LinkStore()
    store.replace_links(BATCH)
    github, react, news = store.links
    store.track_click(react.id)
    store.track_click(react.id)
    if store.stats()["most_clicked"] != "React" or store.stats()["total_clicks"] != 2:  # noqa: PLR2004
        raise AssertionError("Clicks should be counted")
    store.reorder_link(news.id, 0)
    if [link.name for link in store.ordered()] != ["News", "GitHub", "React"]:
        raise AssertionError("Reorder should move the link and renumber")
    if not store.delete_link(github.id) or store.delete_link(github.id):
        raise AssertionError("Delete succeeds once")
    if store.delete_all() != 2 or len(store) != 0:  # noqa: PLR2004
        raise AssertionError("delete_all should clear the store")


def test_queries() -> None:
    store = LinkStore()
    store.replace_links(BATCH)
    if [link.name for link in store.filtered_links("Dev")] != ["GitHub", "React"]:
        raise AssertionError("Tag filter should keep matching links in order")
    if len(store.filtered_links(ALL_TAGS)) != len(BATCH):
        raise AssertionError("'all' returns every link")
    if store.all_tags() != [ALL_TAGS, "Dev", "Read", "Dev > Frontend"]:
        msg = f"Unexpected tag list {store.all_tags()}"
        raise AssertionError(msg)
    if [link.name for link in store.search("frontend")] != ["React"]:
        raise AssertionError("Search should match tags case-insensitively")


def test_json_snapshot_round_trip(tmp_path: Path) -> None:
    store = LinkStore()
    store.replace_links(BATCH)
    store.track_click(store.links[0].id)
    snapshot = tmp_path / "links.json"
    store.save_json(snapshot)
    loaded = LinkStore.load_json(snapshot)
    if [link.model_dump() for link in loaded.links] != [link.model_dump() for link in store.links]:
        raise AssertionError("Snapshot should restore every field")


def test_load_json_rejects_invalid_entries(tmp_path: Path) -> None:
    snapshot = tmp_path / "links.json"
    snapshot.write_text('[{"name": "Bad", "url": "ftp://x"}]', encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid link snapshot"):
        LinkStore.load_json(snapshot)


def test_tag_tree_counts_links() -> None:
    store = LinkStore()
    store.replace_links(BATCH)
    forest = {node.name: node for node in store.tag_tree()}
    if set(forest) != {"Dev", "Read"} or forest["Dev"].count != 2:  # noqa: PLR2004
        msg = f"Unexpected tree {forest}"
        raise AssertionError(msg)
    frontend = forest["Dev"].children[0]
    if (frontend.name, frontend.full_path, frontend.count) != ("Frontend", "Dev > Frontend", 1):
        msg = f"Unexpected child {frontend}"
        raise AssertionError(msg)


def test_replace_survives_rc_round_trip() -> None:
    batch = [
        *BATCH,
        _draft("GitHub again", "https://GitHub.com", "Dup"),
        _draft("Map", "https://www.google.com/maps/@37.7,-122.4,12z", "Travel", "Travel > Maps"),
    ]
    store = LinkStore()
    store.replace_links(batch)
    reloaded = LinkStore()
    reloaded.replace_links(parse_rc(dump_rc(store.links)))
    if reloaded.url_keys() != store.url_keys() or len(reloaded) != len(BATCH) + 1:
        msg = f"Reloading the dumped store changed its urls: {reloaded.links}"
        raise AssertionError(msg)
    again = LinkStore()
    again.reload_from_rc(reloaded.to_rc())
    if again.to_rc() != reloaded.to_rc():
        raise AssertionError("A second round trip should be a no-op")
