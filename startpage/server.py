"""Flask HTTP surface around the RC file and the bookmark importer."""

from __future__ import annotations

import logging
import platform
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from flask import Flask, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from .importer import BookmarkImporter
from .models import LinkCandidateModel, LinkDraft
from .parser import ImportFailedError
from .rc_file import RcFile

if TYPE_CHECKING:  # pragma: no cover
    from flask.typing import ResponseReturnValue

LOGGER = logging.getLogger(__name__)

ENDPOINTS = (
    "GET /api/rc",
    "POST /api/rc",
    "POST /api/rc/append",
    "POST /api/rc/path",
    "GET /api/system",
    "POST /api/import",
)


@dataclass(slots=True)
class AppContext:
    """State shared by the request handlers of one server instance."""

    default_rc_path: Path
    importer: BookmarkImporter = field(default_factory=BookmarkImporter)
    current_rc_path: Path | None = None
    started_at: float = field(default_factory=time.monotonic)
    _files: dict[Path, RcFile] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Gateways are keyed by resolved path so every spelling shares one lock.
        self.default_rc_path = _expand(str(self.default_rc_path))
        if self.current_rc_path is not None:
            self.current_rc_path = _expand(str(self.current_rc_path))

    def rc_for(self, raw_path: str | None = None) -> RcFile:
        """The gateway for ``raw_path`` (or the active RC file); one per path."""
        path = _expand(raw_path) if raw_path else self.active_path
        if path not in self._files:
            self._files[path] = RcFile(path)
        return self._files[path]

    @property
    def active_path(self) -> Path:
        return self.current_rc_path or self.default_rc_path

    def use_rc_path(self, raw_path: str) -> RcFile:
        """Switch the active RC file, creating it when missing."""
        self.current_rc_path = _expand(raw_path)
        rc_file = self.rc_for()
        rc_file.ensure_exists()
        LOGGER.info("Active RC file is now %s", self.current_rc_path)
        return rc_file


def _expand(raw_path: str) -> Path:
    return Path(raw_path).expanduser().resolve()


def _error(status: int, error: str, details: str | None = None) -> ResponseReturnValue:
    payload: dict[str, object] = {"success": False, "error": error}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def _draft_json(draft: LinkDraft) -> dict[str, object]:
    return {
        "name": draft.name,
        "url": draft.url,
        "tags": list(draft.tags),
        "description": draft.description,
        "source": draft.source,
        "lineNumber": draft.line_number,
    }


def _json_body() -> dict[str, object]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _candidates(items: list[object]) -> tuple[list[LinkDraft], int]:
    drafts: list[LinkDraft] = []
    invalid = 0
    for item in items:
        try:
            model = LinkCandidateModel.model_validate(item)
        except ValidationError:
            invalid += 1
            continue
        drafts.append(LinkDraft.from_model(model))
    return drafts, invalid


def create_app(context: AppContext) -> Flask:
    """Build the Flask application bound to ``context``."""
    app = Flask(__name__)

    @app.get("/api/rc")
    def read_rc() -> ResponseReturnValue:
        snapshot = context.rc_for(request.args.get("path")).read()
        return jsonify(
            success=True,
            path=str(snapshot.path),
            links=[_draft_json(draft) for draft in snapshot.links],
            lastModified=snapshot.last_modified,
            lineCount=snapshot.line_count,
        )

    @app.post("/api/rc")
    def write_rc() -> ResponseReturnValue:
        body = _json_body()
        content = body.get("content")
        if not isinstance(content, str):
            return _error(400, "content is required")
        raw_path = body.get("path")
        rc_file = context.rc_for(raw_path if isinstance(raw_path, str) else None)
        backup = rc_file.write(content)
        return jsonify(
            success=True,
            path=str(rc_file.path),
            backup=str(backup) if backup else None,
        )

    @app.post("/api/rc/append")
    def append_rc() -> ResponseReturnValue:
        body = _json_body()
        items = body.get("links", [])
        if not isinstance(items, list):
            return _error(400, "links must be a list")
        raw_path = body.get("path")
        rc_file = context.rc_for(raw_path if isinstance(raw_path, str) else None)
        drafts, invalid = _candidates(items)
        result = rc_file.append(drafts)
        return jsonify(
            success=True,
            path=str(rc_file.path),
            added=result.added,
            skipped=result.skipped + invalid,
        )

    @app.post("/api/rc/path")
    def set_rc_path() -> ResponseReturnValue:
        raw_path = _json_body().get("path")
        if not isinstance(raw_path, str) or not raw_path.strip():
            return _error(400, "path is required")
        rc_file = context.use_rc_path(raw_path.strip())
        return jsonify(success=True, path=str(rc_file.path))

    @app.get("/api/system")
    def system_info() -> ResponseReturnValue:
        return jsonify(
            platform=sys.platform,
            system=platform.system(),
            homedir=str(Path.home()),
            currentRcPath=str(context.active_path),
            defaultRcPath=str(context.default_rc_path),
            pythonVersion=platform.python_version(),
            uptime=round(time.monotonic() - context.started_at, 3),
        )

    @app.post("/api/import")
    def import_bookmarks() -> ResponseReturnValue:
        body = _json_body()
        filename = body.get("filename")
        content = body.get("content")
        if not isinstance(filename, str) or not isinstance(content, str):
            return _error(400, "filename and content are required")
        try:
            drafts = context.importer.prepare_text(content, filename)
        except ImportFailedError as exc:
            LOGGER.warning("Rejected bookmark import %s: %s", filename, exc)
            return _error(400, "Bookmark import failed", str(exc))
        rc_file = context.rc_for()
        result = context.importer.apply(drafts, rc_file.append)
        return jsonify(
            success=True,
            path=str(rc_file.path),
            total=result.total,
            added=result.added,
            skipped=result.skipped,
            stats=result.stats.as_dict(),
        )

    @app.errorhandler(404)
    def not_found(_exc: HTTPException) -> ResponseReturnValue:
        return jsonify(error="API endpoint not found", availableEndpoints=list(ENDPOINTS)), 404

    @app.errorhandler(HTTPException)
    def http_error(exc: HTTPException) -> ResponseReturnValue:
        return _error(exc.code or 500, exc.name, exc.description)

    @app.errorhandler(Exception)
    def internal_error(exc: Exception) -> ResponseReturnValue:
        LOGGER.exception("Unhandled server error")
        return _error(500, "Internal server error", str(exc))

    return app
