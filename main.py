"""CLI entry point for the startpage link store.

Modes: ``parse`` writes normalised bookmarks to JSON, ``import`` appends an
export (or the local Chrome profile) to the RC file, ``reload`` rebuilds a
link snapshot from the RC file, ``stats`` summarises it and ``serve`` runs the
HTTP API.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from attrs import asdict
from dotenv import load_dotenv

from startpage.client import RcClient
from startpage.config import DEFAULT_HOST, DEFAULT_PORT, default_rc_path
from startpage.importer import BookmarkImporter
from startpage.models import AppendResult
from startpage.normaliser import generate_stats
from startpage.parser import ImportFailedError
from startpage.rc_file import RcFile
from startpage.server import AppContext, create_app
from startpage.store import LinkStore

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable

    from startpage.models import LinkDraft

STAGES: dict[int, str] = {
    1: "Parse bookmark export",
    2: "Normalise and deduplicate",
    3: "Append to RC file",
    4: "Reload link store",
    5: "Serve HTTP API",
}


def configure_logging(*, verbose: bool) -> None:
    """Configure root logging (debug when verbose)."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def log_stage(stage_number: int, message: str, *args: object) -> None:
    """Log a message prefixed with a stage label."""
    stage_label = STAGES.get(stage_number, f"Stage {stage_number}")
    logger = logging.getLogger("startpage")
    logger.info("[%s] %s", stage_label, message % args if args else message)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import bookmarks into a startpage RC file")
    parser.add_argument(
        "--mode",
        choices=("parse", "import", "reload", "stats", "serve"),
        default="import",
        help=(
            "Workflow: 'parse'→JSON of normalised bookmarks; 'import'→append to the RC file;"
            " 'reload'→rebuild a link snapshot from the RC file; 'stats'→summary;"
            " 'serve'→run the HTTP API."
        ),
    )
    parser.add_argument(
        "--input",
        help="Bookmark export (.html/.htm or Chrome .json). Omit to use the local Chrome profile.",
    )
    parser.add_argument(
        "--rc-path",
        help="RC file to read or update. Defaults to RC_PATH, ./.myweb.rc or ~/.myweb.rc.",
    )
    parser.add_argument(
        "--json-output",
        default="links.json",
        help="Path to emit the JSON written by 'parse' and 'reload'",
    )
    parser.add_argument(
        "--include-special-folders",
        action="store_true",
        help="Turn browser container folders (Bookmarks Bar, Other Bookmarks) into tags",
    )
    parser.add_argument(
        "--server",
        nargs="?",
        const=os.getenv("STARTPAGE_SERVER_URL", ""),
        help=(
            "Append through a running server instead of writing the file directly"
            " (defaults to STARTPAGE_SERVER_URL)"
        ),
    )
    parser.add_argument("--host", default=os.getenv("HOST", DEFAULT_HOST))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", str(DEFAULT_PORT))))
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)
    if args.server is not None and args.mode != "import":
        parser.error("--server can only be combined with mode=import")
    if args.server == "":
        parser.error("--server needs a URL when STARTPAGE_SERVER_URL is not set")
    return args


def _resolve_rc_path(path_arg: str | None) -> Path:
    return Path(path_arg).expanduser() if path_arg else default_rc_path()


def _prepare(importer: BookmarkImporter, input_arg: str | None) -> list[LinkDraft]:
    if input_arg:
        log_stage(1, "Parsing %s", input_arg)
        return importer.prepare_file(Path(input_arg))
    log_stage(1, "Looking for the local Chrome bookmarks file")
    return importer.prepare_system()


def _server_append(server_url: str) -> Callable[[list[LinkDraft]], AppendResult]:
    client = RcClient(server_url)

    def append(drafts: list[LinkDraft]) -> AppendResult:
        result = client.append(drafts)
        if not result.ok:
            msg = f"Server append failed: {result.reason}"
            raise SystemExit(msg)
        added = int(result.payload.get("added", 0))
        return AppendResult(added=added, skipped=int(result.payload.get("skipped", 0)))

    return append


def _handle_parse(args: argparse.Namespace, importer: BookmarkImporter) -> None:
    drafts = _prepare(importer, args.input)
    json_path = Path(args.json_output)
    stats = generate_stats(drafts)
    log_stage(2, "Most used tags: %s", stats.top_tags(5))
    log_stage(2, "Writing %d normalised bookmarks to %s", len(drafts), json_path)
    payload = {
        "links": [draft.to_model().model_dump() for draft in drafts],
        "stats": stats.as_dict(),
    }
    json_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def _handle_import(args: argparse.Namespace, importer: BookmarkImporter) -> None:
    drafts = _prepare(importer, args.input)
    log_stage(2, "%d bookmarks left after normalisation", len(drafts))
    if args.server:
        log_stage(3, "Appending through %s", args.server)
        result = importer.apply(drafts, _server_append(args.server))
    else:
        rc_file = RcFile(_resolve_rc_path(args.rc_path))
        log_stage(3, "Appending to %s", rc_file.path)
        result = importer.apply(drafts, rc_file.append)
    log_stage(3, result.summary())


def _load_store(rc_path: Path) -> LinkStore:
    snapshot = RcFile(rc_path).read()
    store = LinkStore()
    store.replace_links(snapshot.links)
    log_stage(4, "Loaded %d links from %s", len(store), rc_path)
    return store


def _handle_reload(args: argparse.Namespace) -> None:
    store = _load_store(_resolve_rc_path(args.rc_path))
    store.save_json(Path(args.json_output))


def _handle_stats(args: argparse.Namespace) -> None:
    store = _load_store(_resolve_rc_path(args.rc_path))
    summary = store.stats()
    summary["tags"] = store.all_tags()[1:]
    summary["tag_tree"] = [asdict(node) for node in store.tag_tree()]
    sys.stdout.write(json.dumps(summary, indent=2, ensure_ascii=False) + "\n")


def _handle_serve(args: argparse.Namespace, importer: BookmarkImporter) -> None:
    context = AppContext(default_rc_path=_resolve_rc_path(args.rc_path), importer=importer)
    context.rc_for().ensure_exists()
    log_stage(5, "Serving on %s:%d (RC file %s)", args.host, args.port, context.active_path)
    create_app(context).run(host=args.host, port=args.port)


def main(argv: list[str] | None = None) -> None:
    """Entry point for the startpage CLI."""
    load_dotenv()
    args = _parse_args(argv)
    configure_logging(verbose=args.verbose)
    importer = BookmarkImporter(include_special_folders=args.include_special_folders)

    try:
        if args.mode == "parse":
            _handle_parse(args, importer)
        elif args.mode == "import":
            _handle_import(args, importer)
        elif args.mode == "reload":
            _handle_reload(args)
        elif args.mode == "stats":
            _handle_stats(args)
        else:
            _handle_serve(args, importer)
    except ImportFailedError as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
