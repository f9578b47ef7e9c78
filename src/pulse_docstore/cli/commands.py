"""
CLI commands - entry points for document storage.

Each command follows a consistent pattern:
1. Parse arguments
2. Build the storage orchestrator
3. Run the operation
4. Print results
5. Return exit code
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from pulse_docstore.core import BothBackendsFailed, ConfigurationError
from pulse_docstore.observability import init_tracing, shutdown_tracing
from pulse_docstore.retrieval import format_search_context, get_document_storage


def _load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--user", default=None, help="User id (default: all users / configured default)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")


def _run(operation) -> int:
    """Run an operation, mapping storage failures to exit code 1."""
    init_tracing()
    try:
        return operation()
    except (BothBackendsFailed, ConfigurationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        shutdown_tracing()


def run_store_cli() -> int:
    """CLI entry point for storing a text file."""
    parser = argparse.ArgumentParser(description="Store a text document")
    parser.add_argument("path", type=Path, help="Text file to store")
    parser.add_argument("--type", dest="file_type", default="text/plain", help="MIME type recorded with the document")
    _add_common_args(parser)
    args = parser.parse_args()
    _configure_logging(args.verbose)

    try:
        content = args.path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: could not read {args.path}: {e}", file=sys.stderr)
        return 1

    def _store() -> int:
        storage = get_document_storage()
        report = storage.store_document(args.path.name, args.file_type, content, args.user)
        if report.skipped:
            print(f"Skipped {args.path.name}: content too short for storage")
        else:
            print(f"Stored {args.path.name} in {report.describe()}")
        return 0

    return _run(_store)


def run_search_cli() -> int:
    """CLI entry point for searching stored documents."""
    parser = argparse.ArgumentParser(description="Search stored documents")
    parser.add_argument("query", help="Search query")
    parser.add_argument("--top-k", type=int, default=5, help="Maximum results")
    _add_common_args(parser)
    args = parser.parse_args()
    _configure_logging(args.verbose)

    def _search() -> int:
        storage = get_document_storage()
        results = storage.search_documents(args.query, args.top_k, args.user)
        if not results:
            print("No matching documents")
            return 0
        print(f"Backend: {results[0].backend.value}")
        print(format_search_context(results))
        return 0

    return _run(_search)


def run_list_cli() -> int:
    """CLI entry point for listing stored documents."""
    parser = argparse.ArgumentParser(description="List stored documents")
    _add_common_args(parser)
    args = parser.parse_args()
    _configure_logging(args.verbose)

    def _list() -> int:
        storage = get_document_storage()
        documents = storage.list_user_documents(args.user)

        print("=" * 60)
        print("STORED DOCUMENTS")
        print("=" * 60)
        for doc in documents:
            print(f"  {doc.file_name}  [{doc.file_type}]  {doc.timestamp}  chunks={doc.total_chunks}  ({doc.backend.value})")
        print(f"\nTotal: {len(documents)}")
        return 0

    return _run(_list)


def run_clear_cli() -> int:
    """CLI entry point for clearing stored documents."""
    parser = argparse.ArgumentParser(description="Clear stored documents")
    _add_common_args(parser)
    args = parser.parse_args()
    _configure_logging(args.verbose)

    def _clear() -> int:
        storage = get_document_storage()
        report = storage.clear_user_documents(args.user)
        print(f"Local storage cleared: {'yes' if report.local_cleared else 'no'}")
        print(f"Remote index cleared: {'yes' if report.remote_cleared else 'no'} ({report.remote_deleted} vectors)")
        return 0

    return _run(_clear)


def main() -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        pulse-docs store notes.txt       # Store a text file
        pulse-docs search "revenue"      # Search stored documents
        pulse-docs list                  # List stored documents
        pulse-docs clear                 # Remove stored documents
    """
    _load_env()

    parser = argparse.ArgumentParser(
        description="Document storage and retrieval",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  store       Clean, chunk, embed and store a text file
  search      Search stored documents
  list        List stored documents
  clear       Remove stored documents from both backends

Examples:
  pulse-docs store notes.txt --user alice
  pulse-docs search "quarterly revenue" --top-k 3
        """,
    )

    parser.add_argument(
        "command",
        choices=["store", "search", "list", "clear"],
        help="Operation to run",
    )

    # Parse just the command first
    args, remaining = parser.parse_known_args()

    commands = {
        "store": run_store_cli,
        "search": run_search_cli,
        "list": run_list_cli,
        "clear": run_clear_cli,
    }

    # Re-inject remaining args for the subcommand
    sys.argv = [sys.argv[0]] + remaining

    try:
        return commands[args.command]()
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
