"""Entry normalization for benchmark runs.

This module turns the raw measurements of one run into BenchResult
records with collision-free canonical names.

Repeated raw names are disambiguated positionally: the first occurrence
keeps its name, the k-th occurrence becomes ``"<name> #k"``.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from benchwatch.core.exceptions import ValidationError
from benchwatch.core.types import BenchResult, RawMeasurement

if TYPE_CHECKING:
    from collections.abc import Iterable

# Matches the "± 3973747" range notation emitted by cargo bench and friends
_RANGE_PATTERN = re.compile(r"^\s*(?:±|\+/-|\+-)\s*(.+)$")


def canonical_name(raw_name: str, occurrence: int) -> str:
    """Build the canonical name for the k-th occurrence of a raw name.

    Args:
        raw_name: Name reported by the tool.
        occurrence: 1-based occurrence count within the run.

    Returns:
        The raw name for the first occurrence, ``"<raw_name> #k"`` otherwise.

    Example:
        >>> canonical_name("FFT", 3)
        'FFT #3'
    """
    if occurrence <= 1:
        return raw_name
    return f"{raw_name} #{occurrence}"


def _coerce_measurement(entry: Any, position: int) -> RawMeasurement:
    """Accept RawMeasurement, plain 4-tuples, or exchange-format mappings."""
    if isinstance(entry, RawMeasurement):
        return entry
    if isinstance(entry, Mapping):
        name = entry.get("name", entry.get("raw_name"))
        if "errorMargin" in entry:
            margin = entry["errorMargin"]
        elif "error_margin" in entry:
            margin = entry["error_margin"]
        else:
            margin = entry.get("range")
        return RawMeasurement(name, entry.get("value"), margin, entry.get("unit", ""))
    if isinstance(entry, (tuple, list)) and len(entry) == 4:
        return RawMeasurement(*entry)
    raise ValidationError(None, position, f"expected (name, value, error_margin, unit), got {entry!r}")


def _parse_number(raw: Any, field: str, raw_name: str, position: int) -> float:
    """Parse a finite number from an int, float, or numeric string."""
    if raw is None:
        raise ValidationError(raw_name, position, f"{field} is missing")
    if isinstance(raw, bool):
        raise ValidationError(raw_name, position, f"{field} is not numeric: {raw!r}")
    if isinstance(raw, (int, float)):
        number = float(raw)
    elif isinstance(raw, str):
        try:
            number = float(raw.strip().replace(",", ""))
        except ValueError:
            raise ValidationError(raw_name, position, f"{field} is not numeric: {raw!r}") from None
    else:
        raise ValidationError(raw_name, position, f"{field} is not numeric: {raw!r}")

    if not math.isfinite(number):
        raise ValidationError(raw_name, position, f"{field} is not finite: {raw!r}")
    return number


def parse_error_margin(raw: Any, raw_name: str, position: int) -> float:
    """Parse an error margin, accepting the ``"± N"`` range notation.

    Args:
        raw: Error margin as a number, numeric string, or range string.
        raw_name: Raw name of the measurement (for error messages).
        position: Position of the measurement (for error messages).

    Returns:
        The non-negative error margin.

    Raises:
        ValidationError: If the margin is missing, not numeric, or negative.
    """
    if isinstance(raw, str):
        match = _RANGE_PATTERN.match(raw)
        if match:
            raw = match.group(1)
    margin = _parse_number(raw, "error margin", raw_name, position)
    if margin < 0:
        raise ValidationError(raw_name, position, f"error margin must be non-negative, got {margin}")
    return margin


def normalize_entries(entries: Iterable[Any]) -> list[BenchResult]:
    """Normalize the raw measurements of one run.

    Entries are processed in input order. Any invalid entry rejects the
    whole run; no partial result is ever returned.

    Args:
        entries: Raw measurements as RawMeasurement, 4-tuples
            ``(name, value, error_margin, unit)``, or mappings with
            ``name``/``value``/``errorMargin`` (or ``range``)/``unit`` keys.

    Returns:
        BenchResult records in input order with unique canonical names.

    Raises:
        ValidationError: If any entry is malformed.

    Example:
        >>> results = normalize_entries([("A", 1, 0, "ns"), ("B", 2, 0, "ns"), ("A", 3, 0, "ns")])
        >>> [r.name for r in results]
        ['A', 'B', 'A #2']
    """
    seen: dict[str, int] = {}
    taken: set[str] = set()
    results: list[BenchResult] = []

    for position, entry in enumerate(entries):
        measurement = _coerce_measurement(entry, position)

        raw_name = measurement.raw_name
        if not isinstance(raw_name, str) or not raw_name:
            raise ValidationError(None, position, f"name must be a non-empty string, got {raw_name!r}")
        if not isinstance(measurement.unit, str):
            raise ValidationError(raw_name, position, f"unit must be a string, got {measurement.unit!r}")

        value = _parse_number(measurement.value, "value", raw_name, position)
        margin = parse_error_margin(measurement.error_margin, raw_name, position)

        occurrence = seen.get(raw_name, 0) + 1
        seen[raw_name] = occurrence
        name = canonical_name(raw_name, occurrence)
        # A literal "A #2" reported earlier in the same run would collide
        if name in taken:
            raise ValidationError(raw_name, position, f"canonical name {name!r} collides with an earlier entry")
        taken.add(name)

        results.append(
            BenchResult(
                name=name,
                raw_name=raw_name,
                value=value,
                error_margin=margin,
                unit=measurement.unit,
            )
        )

    return results
