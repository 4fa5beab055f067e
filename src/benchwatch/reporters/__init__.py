"""Reporters module for benchwatch.

This module provides output formatters for regression reports:
- Console: Terminal output with colored status indicators
- JSON: Machine-readable format for alert emitters
"""

from __future__ import annotations

from benchwatch.reporters.console import ConsoleReporter
from benchwatch.reporters.json import JSONReporter

__all__ = [
    "ConsoleReporter",
    "JSONReporter",
]
