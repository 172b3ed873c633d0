"""CLI/bootstrap helpers for the paper-swipe application."""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir
from rich.console import Console
from rich.table import Table

from paper_swipe.auth import normalize_user_id
from paper_swipe.config import coerce_page_size, load_config
from paper_swipe.errors import PaperSwipeError
from paper_swipe.models import CONFIG_APP_NAME, MAX_PAGE_SIZE, FeedPage, FeedQuery, UserConfig
from paper_swipe.query import CATEGORY_TOPICS
from paper_swipe.services.arxiv_api_service import search_sync

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure logging. When debug=True, logs to file at DEBUG level."""
    if not debug:
        # Default: suppress all logging (TUI captures stderr)
        logging.disable(logging.CRITICAL)
        return

    log_dir = Path(user_config_dir(CONFIG_APP_NAME))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "debug.log"

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)


def _validate_interactive_tty() -> bool:
    """Return True when stdin/stdout are interactive terminals."""
    return bool(sys.stdin.isatty() and sys.stdout.isatty())


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Swipe through arXiv papers: like, bookmark and chat from the terminal"
    )
    parser.add_argument(
        "--query",
        type=str,
        default=None,
        help="Free-text search to start with (default: last session's search)",
    )
    parser.add_argument(
        "--category",
        action="append",
        choices=sorted(CATEGORY_TOPICS),
        default=None,
        help="Category filter; repeat to select several (for example: --category cs.AI)",
    )
    parser.add_argument(
        "--user",
        type=str,
        default=None,
        help="Sign in as this user id or email",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the likes/bookmarks database (default: user data dir)",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help=f"Papers fetched per page (1-{MAX_PAGE_SIZE}; default: config value)",
    )
    parser.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Fetch one page and print it as a table instead of starting the UI",
    )
    parser.add_argument(
        "--no-restore",
        action="store_true",
        help="Start with a fresh session (ignore the saved search and position)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to file (~/.config/paper-swipe/debug.log)",
    )
    return parser


def _initial_query(args: argparse.Namespace) -> FeedQuery | None:
    """Query requested on the command line, or None to use the saved session."""
    if args.query is None and not args.category:
        return None
    return FeedQuery(
        search_text=args.query or "",
        categories=tuple(dict.fromkeys(args.category or ())),
    )


def _apply_overrides(args: argparse.Namespace, config: UserConfig) -> int | None:
    """Fold command-line overrides into ``config``. Returns an exit code on error."""
    if args.user is not None:
        try:
            config.user_id = normalize_user_id(args.user)
        except ValueError as e:
            print(f"Error: --user {e}", file=sys.stderr)
            return 1
    if args.page_size is not None:
        if args.page_size < 1:
            print("Error: --page-size must be at least 1", file=sys.stderr)
            return 1
        config.page_size = coerce_page_size(args.page_size)
    if args.db is not None:
        config.store_db_path = str(args.db)
    return None


def render_page_table(page: FeedPage, query: FeedQuery) -> Table:
    """Build the rich table printed by ``--print``."""
    table = Table(title=f"arXiv: {query.to_search_query()}", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Authors")
    table.add_column("Year", justify="right")
    table.add_column("Categories", style="green")
    for index, paper in enumerate(page.papers, start=page.offset + 1):
        table.add_row(
            str(index),
            paper.id,
            paper.title,
            paper.author_line,
            str(paper.year),
            ", ".join(paper.categories),
        )
    if page.has_more:
        table.caption = "More results available"
    return table


def _print_page(
    query: FeedQuery,
    config: UserConfig,
    fetch_page_fn: Callable[..., FeedPage],
    console: Console,
) -> int:
    try:
        page = fetch_page_fn(
            query.to_search_query(),
            0,
            config.page_size,
            timeout_seconds=config.request_timeout_seconds,
            missing_published=config.missing_published_policy,
        )
    except PaperSwipeError as e:
        logger.warning("Fetch for --print failed", exc_info=True)
        print(f"Error: could not fetch papers: {e}", file=sys.stderr)
        return 1
    if not page.papers:
        print("No papers matched the query.", file=sys.stderr)
        return 1
    console.print(render_page_table(page, query))
    return 0


def main(
    argv: list[str] | None = None,
    *,
    load_config_fn: Callable[[], UserConfig] = load_config,
    configure_logging_fn: Callable[[bool], None] = _configure_logging,
    validate_interactive_tty_fn: Callable[[], bool] = _validate_interactive_tty,
    fetch_page_fn: Callable[..., FeedPage] = search_sync,
    app_factory: Callable[..., Any] | None = None,
    console: Console | None = None,
) -> int:
    """Main entry point. Returns exit code."""
    args = _build_parser().parse_args(argv)

    configure_logging_fn(args.debug)
    logger.debug("paper-swipe starting, cwd=%s", Path.cwd())

    config = load_config_fn()
    error = _apply_overrides(args, config)
    if error is not None:
        return error

    initial_query = _initial_query(args)

    if args.print_only:
        query = initial_query or FeedQuery(categories=tuple(config.selected_categories))
        return _print_page(query, config, fetch_page_fn, console or Console())

    if not validate_interactive_tty_fn():
        print(
            "Error: paper-swipe requires an interactive TTY for the full UI.",
            file=sys.stderr,
        )
        print("Next steps:", file=sys.stderr)
        print("  - Run paper-swipe directly in a terminal session", file=sys.stderr)
        print("  - Use --print for non-interactive output", file=sys.stderr)
        print("  - Use --help for command documentation", file=sys.stderr)
        return 2

    if app_factory is None:
        from paper_swipe.app import PaperSwipeApp as _PaperSwipeApp

        app_factory = _PaperSwipeApp

    app = app_factory(
        config=config,
        restore_session=not args.no_restore and initial_query is None,
        initial_query=initial_query,
    )
    app.run()
    return 0


__all__ = [
    "_configure_logging",
    "_validate_interactive_tty",
    "main",
    "render_page_table",
]
