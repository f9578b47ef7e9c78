"""
CLI module - the `pulse-docs` command-line interface.
"""

from pulse_docstore.cli.commands import (
    main,
    run_clear_cli,
    run_list_cli,
    run_search_cli,
    run_store_cli,
)

__all__ = [
    "main",
    "run_clear_cli",
    "run_list_cli",
    "run_search_cli",
    "run_store_cli",
]
