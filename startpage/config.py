"""Global configuration constants for the startpage link store."""

from __future__ import annotations

import os
from pathlib import Path

# Display names longer than this are truncated during import.
MAX_NAME_LENGTH: int = 100

# Tag assigned when a bookmark carries no usable folder path ("Unclassified").
UNCLASSIFIED_TAG: str = "미분류"

# Separator between ancestors in a hierarchical tag ("Dev > Frontend").
HIERARCHY_SEPARATOR: str = " > "

# Browser-managed container folders that never become tags.
SPECIAL_FOLDERS: frozenset[str] = frozenset(
    {
        "북마크바",
        "Bookmarks Bar",
        "Bookmarks bar",
        "Bookmarks Toolbar",
        "기타 북마크",
        "Other Bookmarks",
        "Other bookmarks",
        "Other",
        "Bookmarks",
        "북마크",
        "Mobile Bookmarks",
        "Mobile bookmarks",
        "모바일 북마크",
    },
)

RC_FILENAME: str = ".myweb.rc"

DEFAULT_HOST: str = "0.0.0.0"  # noqa: S104
DEFAULT_PORT: int = 3456
DEFAULT_SERVER_URL: str = f"http://localhost:{DEFAULT_PORT}"


def default_rc_path() -> Path:
    """Resolve the RC file location.

    Order: ``RC_PATH`` env var, then ``.myweb.rc`` in the working directory when
    it already exists (container volume), then ``~/.myweb.rc``.
    """
    env_path = os.getenv("RC_PATH")
    if env_path:
        return Path(env_path).expanduser()
    local_candidate = Path.cwd() / RC_FILENAME
    if local_candidate.exists():
        return local_candidate
    return Path.home() / RC_FILENAME
