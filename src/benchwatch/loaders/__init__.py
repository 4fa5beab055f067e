"""Loaders for external benchmark history files."""

from __future__ import annotations

from benchwatch.loaders.data_js import (
    ImportedHistory,
    ImportedRun,
    dump_data_js,
    load_history_file,
    parse_data_js,
)

__all__ = [
    "ImportedHistory",
    "ImportedRun",
    "dump_data_js",
    "load_history_file",
    "parse_data_js",
]
