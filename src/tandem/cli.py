from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone
from importlib import metadata

import uvicorn
from rich.console import Console
from rich.text import Text

from .client import BackendClient
from .config import TRANSLATION_MODELS, ViewerConfig, load_config
from .diffing import ADDED, REMOVED, DiffPart, diff_words, has_changes
from .errors import LoadError
from .logging_utils import build_uvicorn_log_config, set_debug_logging
from .session import DocumentSession
from .web import create_app


try:
    __version__ = metadata.version("tandem")
except metadata.PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0+unknown"


def _add_version_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"tandem {__version__}",
    )


def _add_backend_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--api-url",
        help="Backend base URL (default: $TANDEM_API_URL or http://127.0.0.1:8080)",
    )
    parser.add_argument(
        "--token",
        help="Bearer token passed to the backend (default: $TANDEM_TOKEN)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="HTTP timeout in seconds (default: $TANDEM_TIMEOUT or 30)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log debug messages.",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tandem",
        description=(
            "Sentence-level bilingual annotation engine. "
            "Commands: `tandem diff`, `tandem history`, `tandem web`."
        ),
    )
    _add_version_flag(ap)
    return ap


def build_diff_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tandem diff",
        description="Show a word-level diff between two translation texts.",
    )
    ap.add_argument("old", help="Earlier text")
    ap.add_argument("new", help="Later text")
    ap.add_argument(
        "--lookahead",
        type=int,
        default=5,
        help="Window size used to resynchronise after a mismatch (default: 5)",
    )
    ap.add_argument(
        "--plain",
        action="store_true",
        help="Mark changes with [-removed-] and {+added+} instead of colors.",
    )
    return ap


def build_history_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tandem history",
        description="Print the version timeline of a sentence with word diffs.",
    )
    ap.add_argument("book_id", help="Book identifier on the backend")
    ap.add_argument("sentence_id", help="Sentence identifier inside the book")
    _add_backend_flags(ap)
    return ap


def build_web_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tandem web",
        description="Serve the dual-pane viewer JSON API.",
    )
    ap.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    ap.add_argument("--port", type=int, default=8090, help="Port to listen on (default: 8090)")
    ap.add_argument(
        "--model",
        choices=TRANSLATION_MODELS,
        help="Default translation model for new sessions (default: $TANDEM_MODEL or kazllm)",
    )
    _add_backend_flags(ap)
    return ap


def _config_from_args(args: argparse.Namespace) -> ViewerConfig:
    config = load_config()
    return config.with_overrides(
        api_url=getattr(args, "api_url", None),
        token=getattr(args, "token", None),
        timeout=getattr(args, "timeout", None),
        model=getattr(args, "model", None),
    )


def render_diff(parts: list[DiffPart], *, plain: bool = False) -> Text:
    text = Text()
    for part in parts:
        if part.kind == REMOVED:
            if plain:
                text.append(f"[-{part.token}-]")
            else:
                text.append(part.token, style="red strike")
        elif part.kind == ADDED:
            if plain:
                text.append(f"{{+{part.token}+}}")
            else:
                text.append(part.token, style="green")
        else:
            text.append(part.token)
    return text


def _format_timestamp(value: int) -> str:
    if value <= 0:
        return "unknown time"
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def _run_diff(args: argparse.Namespace, console: Console | None = None) -> int:
    console = console or Console()
    try:
        parts = diff_words(args.old, args.new, lookahead=args.lookahead)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    console.print(render_diff(parts, plain=args.plain))
    if not has_changes(parts):
        console.print("(no changes)", style="dim")
    return 0


def _run_history(args: argparse.Namespace, console: Console | None = None) -> int:
    console = console or Console()
    set_debug_logging(args.debug)
    config = _config_from_args(args)
    client = BackendClient(config.api_url, token=config.token, timeout=config.timeout)
    try:
        payload = client.fetch_book(args.book_id)
    except LoadError as exc:
        console.print(f"Failed to load book {args.book_id}: {exc}", style="red")
        return 1
    finally:
        client.close()
    session = DocumentSession.from_payload(args.book_id, payload, config=config)
    location = session.location(args.sentence_id)
    if location is None:
        console.print(f"Sentence {args.sentence_id} not found in book {args.book_id}", style="red")
        return 1
    console.print(Text(f"Original (page {location.page_index + 1}): ", style="bold") + Text(location.original_text))
    record = session.store.get(args.sentence_id)
    if record is None:
        console.print("Not translated yet.", style="yellow")
        return 0
    for entry in session.ledger.timeline(args.sentence_id):
        header = Text(f"#{entry.index + 1} ", style="bold")
        header.append(_format_timestamp(entry.version.timestamp), style="dim")
        if entry.version.model:
            header.append(f" · {entry.version.model}", style="magenta")
        if entry.is_latest:
            header.append(" · current", style="cyan")
        console.print(header)
        console.print(render_diff(entry.parts, plain=not console.is_terminal))
    if record.approved:
        console.print("Approved", style="green")
    if record.is_restored:
        console.print(Text("Restored text: ", style="yellow") + Text(record.text))
    return 0


def _run_web(args: argparse.Namespace) -> None:
    config = _config_from_args(args)
    app = create_app(config)
    print(f"Serving tandem viewer API for {config.api_url}")
    print(f"Web URL: http://{args.host}:{args.port}/")
    print("Press Ctrl+C to stop.\n")
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_config=build_uvicorn_log_config(debug=args.debug),
    )


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] == "diff":
        diff_args = build_diff_parser().parse_args(argv[1:])
        return _run_diff(diff_args)
    if argv and argv[0] == "history":
        history_args = build_history_parser().parse_args(argv[1:])
        return _run_history(history_args)
    if argv and argv[0] == "web":
        web_args = build_web_parser().parse_args(argv[1:])
        _run_web(web_args)
        return 0

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    parser.parse_args(argv)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
