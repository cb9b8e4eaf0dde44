"""Shared pytest fixtures for startpage tests."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from startpage.server import AppContext, create_app

if TYPE_CHECKING:
    from pathlib import Path

    from flask.testing import FlaskClient

NETSCAPE_EXPORT = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>Bookmarks</TITLE>
<H1>Bookmarks</H1>
<DL><p>
    <DT><H3 ADD_DATE="1700000000" PERSONAL_TOOLBAR_FOLDER="true">Bookmarks Bar</H3>
    <DL><p>
        <DT><H3>Dev</H3>
        <DL><p>
            <DT><A HREF="https://github.com" ADD_DATE="1700000001">GitHub</A>
            <DD>Code hosting
            <DT><H3>Frontend</H3>
            <DL><p>
                <DT><A HREF="https://react.dev">React</A>
            </DL><p>
        </DL><p>
        <DT><A HREF="https://news.ycombinator.com">Hacker News</A>
        <DT><A HREF="javascript:void(0)">Bookmarklet</A>
    </DL><p>
</DL><p>
"""

CHROME_EXPORT = {
    "checksum": "0",
    "roots": {
        "bookmark_bar": {
            "name": "Bookmarks bar",
            "type": "folder",
            "children": [
                {"type": "url", "name": "GitHub", "url": "https://github.com"},
                {
                    "type": "folder",
                    "name": "Dev",
                    "children": [
                        {
                            "type": "url",
                            "name": "React",
                            "url": "https://react.dev",
                            "date_added": "13300000000000000",
                        },
                    ],
                },
            ],
        },
        "other": {"name": "Other bookmarks", "type": "folder", "children": []},
        "sync_transaction_version": "1",
    },
    "version": 1,
}


@pytest.fixture
def sample_export_html(tmp_path: Path) -> Path:
    """Write a Chrome-style Netscape export with nested folders."""
    p = tmp_path / "bookmarks.html"
    p.write_text(NETSCAPE_EXPORT, encoding="utf-8")
    return p


@pytest.fixture
def sample_export_json(tmp_path: Path) -> Path:
    """Write a Chrome ``Bookmarks`` JSON export."""
    p = tmp_path / "bookmarks.json"
    p.write_text(json.dumps(CHROME_EXPORT), encoding="utf-8")
    return p


@pytest.fixture
def rc_path(tmp_path: Path) -> Path:
    """Location of an RC file that does not exist yet."""
    return tmp_path / "config" / ".myweb.rc"


@pytest.fixture
def app_context(rc_path: Path) -> AppContext:
    return AppContext(default_rc_path=rc_path)


@pytest.fixture
def client(app_context: AppContext) -> FlaskClient:
    """Flask test client bound to a temporary RC file."""
    app = create_app(app_context)
    app.config.update(TESTING=True)
    return app.test_client()
