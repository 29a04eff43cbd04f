"""CLI entry point for quotesync."""

import argparse
import asyncio
import inspect
import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path

from .book import QuoteBook
from .config import Config, load_config
from .errors import ImportRejected, InvalidQuoteError
from .presenter import ConsolePresenter
from .storage import PersistentStore, SessionCache
from .sync import RemoteSource, SyncCoordinator, SyncMode, SyncOutcome
from .transfer import ImportPolicy


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        try:
            return json.dumps(log_data)
        except (TypeError, ValueError):
            log_data["message"] = str(log_data["message"])
            return json.dumps(log_data, default=str)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: Enable debug logging (ignored if log_level is set).
        log_level: Explicit log level (warning, info, debug).
        json_output: Output logs as JSON lines for machine parsing.
    """
    if log_level:
        level_map = {
            "warning": logging.WARNING,
            "info": logging.INFO,
            "debug": logging.DEBUG,
        }
        level = level_map.get(log_level, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.WARNING

    # Logs go to stderr so command output stays clean
    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )


def build_book(config: Config, presenter: ConsolePresenter | None = None) -> QuoteBook:
    """Wire a QuoteBook from configuration.

    Each command invocation is its own session: the SessionCache starts
    empty, so there is no last viewed quote to restore on load.
    """
    remote = None
    if config.remote.enabled:
        remote = RemoteSource(
            endpoint=config.remote.endpoint,
            timeout=config.remote.timeout_seconds,
            fetch_limit=config.remote.fetch_limit,
        )

    return QuoteBook(
        store=PersistentStore(config.storage.db_path),
        session=SessionCache(),
        remote=remote,
        presenter=presenter or ConsolePresenter(),
    )


def build_coordinator(config: Config, book: QuoteBook) -> SyncCoordinator | None:
    """Create the sync coordinator, or None if sync is disabled."""
    if book.remote is None or not config.sync.enabled:
        return None
    return SyncCoordinator(
        book,
        book.remote,
        interval_seconds=config.sync.interval_seconds,
        push_local_only=config.sync.push_local_only,
    )


async def _close(book: QuoteBook) -> None:
    if book.remote:
        await book.remote.close()
    book.store.close()


def cmd_show(args: argparse.Namespace) -> int:
    """Show a random quote."""
    book = build_book(load_config(args.config))
    try:
        return 0 if book.random_quote() else 1
    finally:
        book.store.close()


def cmd_list(args: argparse.Namespace) -> int:
    """List quotes, optionally selecting a category filter."""
    book = build_book(load_config(args.config))
    try:
        if args.category:
            if args.category not in book.categories:
                print(f"Unknown category: {args.category}", file=sys.stderr)
                return 1
            book.select_category(args.category)
        else:
            book.presenter.render_list(book.filtered(), book.selected_category)
        return 0
    finally:
        book.store.close()


def cmd_categories(args: argparse.Namespace) -> int:
    """List known categories."""
    book = build_book(load_config(args.config))
    try:
        selected = book.selected_category
        for category in book.categories:
            marker = "*" if category == selected else " "
            print(f"{marker} {category}")
        return 0
    finally:
        book.store.close()


async def cmd_add(args: argparse.Namespace) -> int:
    """Add a quote and upload it to the server."""
    book = build_book(load_config(args.config))
    try:
        result = await book.add(args.text, args.category)
    except InvalidQuoteError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await _close(book)

    return 0 if result is None or result.ok else 1


async def cmd_sync(args: argparse.Namespace) -> int:
    """Run one manual sync cycle."""
    config = load_config(args.config)
    book = build_book(config)
    coordinator = build_coordinator(config, book)
    if coordinator is None:
        print("Sync is disabled in configuration", file=sys.stderr)
        await _close(book)
        return 1

    try:
        result = await coordinator.run_sync(SyncMode.MANUAL)
    finally:
        await _close(book)

    return 1 if result.outcome == SyncOutcome.FAILURE else 0


async def cmd_run(args: argparse.Namespace) -> int:
    """Sync now, then keep syncing on a timer until interrupted."""
    config = load_config(args.config)
    book = build_book(config)
    coordinator = build_coordinator(config, book)
    if coordinator is None:
        print("Sync is disabled in configuration", file=sys.stderr)
        await _close(book)
        return 1

    print(f"Syncing with {coordinator.remote.endpoint} every {coordinator.interval_seconds}s")

    try:
        await coordinator.run_sync(SyncMode.MANUAL)
        await coordinator.start()
        if args.duration:
            await asyncio.sleep(args.duration)
        else:
            await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        print("\nShutting down...")
    finally:
        await coordinator.stop()
        await _close(book)

    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Export the collection as pretty-printed JSON."""
    config = load_config(args.config)
    book = build_book(config)
    try:
        count = len(book.quotes)
        path = book.export_to(args.output, config.import_export.export_filename)
    except OSError as e:
        print(f"Error: cannot write export: {e}", file=sys.stderr)
        return 1
    finally:
        book.store.close()

    print(f"Exported {count} quotes to {path}")
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    """Import quotes from a JSON file."""
    config = load_config(args.config)
    book = build_book(config)

    policy = config.import_export.import_policy
    if args.append:
        policy = ImportPolicy.APPEND
    elif args.replace:
        policy = ImportPolicy.REPLACE

    try:
        book.import_from(args.path, policy)
    except ImportRejected:
        return 1
    finally:
        book.store.close()

    return 0


async def cmd_status(args: argparse.Namespace) -> int:
    """Show storage and remote status."""
    config = load_config(args.config)
    book = build_book(config)

    status_data = {
        "timestamp": datetime.now().isoformat(),
        "storage": book.store.get_stats(),
        "selected_category": book.selected_category,
        "categories": book.categories[1:],
        "remote": {
            "enabled": config.remote.enabled,
            "endpoint": config.remote.endpoint,
            "reachable": None,
        },
        "sync": {
            "enabled": config.sync.enabled,
            "interval_seconds": config.sync.interval_seconds,
            "push_local_only": config.sync.push_local_only,
        },
    }

    try:
        if book.remote:
            status_data["remote"]["reachable"] = await book.remote.health_check()
    finally:
        await _close(book)

    if args.json:
        print(json.dumps(status_data, indent=2))
        return 0

    storage = status_data["storage"]
    print(f"Store: {storage['db_path']} ({storage['quotes']} quotes)")
    if storage.get("corrupt"):
        print("  Stored collection is corrupt; defaults will be used")
    print(f"Categories: {', '.join(status_data['categories']) or '(none)'}")
    print(f"Selected: {status_data['selected_category']}")

    remote = status_data["remote"]
    if remote["enabled"]:
        state = "reachable" if remote["reachable"] else "unreachable"
        print(f"Remote: {remote['endpoint']} ({state})")
    else:
        print("Remote: disabled")

    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="quotesync",
        description="A local-first quote collection synchronized with a remote feed",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file (default: built-in defaults)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    show_parser = subparsers.add_parser("show", help="Show a random quote")
    show_parser.set_defaults(func=cmd_show)

    list_parser = subparsers.add_parser("list", help="List quotes")
    list_parser.add_argument(
        "--category",
        type=str,
        default=None,
        help="Select and remember a category filter ('all' for every quote)",
    )
    list_parser.set_defaults(func=cmd_list)

    categories_parser = subparsers.add_parser("categories", help="List categories")
    categories_parser.set_defaults(func=cmd_categories)

    add_parser = subparsers.add_parser("add", help="Add a quote")
    add_parser.add_argument("text", help="Quote text")
    add_parser.add_argument("category", help="Quote category")
    add_parser.set_defaults(func=cmd_add)

    sync_parser = subparsers.add_parser("sync", help="Sync with the server once")
    sync_parser.set_defaults(func=cmd_sync)

    run_parser = subparsers.add_parser("run", help="Sync periodically until interrupted")
    run_parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until interrupted)",
    )
    run_parser.set_defaults(func=cmd_run)

    export_parser = subparsers.add_parser("export", help="Export quotes to JSON")
    export_parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output file or directory (default: quotes.json)",
    )
    export_parser.set_defaults(func=cmd_export)

    import_parser = subparsers.add_parser("import", help="Import quotes from JSON")
    import_parser.add_argument("path", type=Path, help="JSON file to import")
    policy_group = import_parser.add_mutually_exclusive_group()
    policy_group.add_argument(
        "--append",
        action="store_true",
        help="Append to the collection instead of replacing it",
    )
    policy_group.add_argument(
        "--replace",
        action="store_true",
        help="Replace the whole collection",
    )
    import_parser.set_defaults(func=cmd_import)

    status_parser = subparsers.add_parser("status", help="Show store and remote status")
    status_parser.add_argument(
        "--json",
        action="store_true",
        help="Output status as JSON",
    )
    status_parser.set_defaults(func=cmd_status)

    args = parser.parse_args()

    setup_logging(args.verbose, args.log_level, args.json_logs)

    if not args.command:
        parser.print_help()
        return 1

    func = args.func
    if inspect.iscoroutinefunction(func):
        try:
            return asyncio.run(func(args))
        except KeyboardInterrupt:
            return 0
    return func(args)


if __name__ == "__main__":
    sys.exit(main())
