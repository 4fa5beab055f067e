"""Custom exceptions for benchwatch.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from BenchwatchError for easy catching.
"""

from __future__ import annotations


class BenchwatchError(Exception):
    """Base exception for all benchwatch errors.

    All custom exceptions in benchwatch inherit from this class,
    making it easy to catch all library-specific errors.

    Example:
        >>> try:
        ...     await history.ingest("cargo", metadata, measurements)
        ... except BenchwatchError as e:
        ...     print(f"benchwatch error: {e}")
    """


class ValidationError(BenchwatchError):
    """Raised when a run contains a malformed measurement.

    The whole run is rejected and the store is left untouched.

    Attributes:
        raw_name: Raw name of the offending measurement (None if unreadable).
        position: Zero-based position of the measurement in the run.
        reason: Description of what was wrong.

    Example:
        >>> raise ValidationError("Polynomial/add", 3, "value is not numeric: 'fast'")
    """

    def __init__(self, raw_name: str | None, position: int | None, reason: str) -> None:
        """Initialize ValidationError.

        Args:
            raw_name: Raw name of the offending measurement.
            position: Position of the measurement in the input sequence.
            reason: Description of what was wrong.
        """
        self.raw_name = raw_name
        self.position = position
        self.reason = reason
        if position is None:
            super().__init__(reason)
        else:
            super().__init__(f"Invalid measurement {raw_name!r} at position {position}: {reason}")


class OutOfOrderRunError(ValidationError):
    """Raised when a run is older than the latest run of its suite.

    Runs within a suite must be appended in non-decreasing commit timestamp order.
    """

    def __init__(self, suite_name: str, commit_id: str, timestamp: int, latest_timestamp: int) -> None:
        """Initialize OutOfOrderRunError.

        Args:
            suite_name: Suite the run was appended to.
            commit_id: Commit of the rejected run.
            timestamp: Commit timestamp of the rejected run.
            latest_timestamp: Commit timestamp of the suite's latest run.
        """
        self.suite_name = suite_name
        self.commit_id = commit_id
        self.timestamp = timestamp
        self.latest_timestamp = latest_timestamp
        super().__init__(
            None,
            None,
            f"Run {commit_id} for suite '{suite_name}' has timestamp {timestamp}, "
            f"older than the latest recorded run ({latest_timestamp})",
        )


class DuplicateCommitError(BenchwatchError):
    """Raised when a commit is already recorded for a suite.

    The store rejects the run instead of merging it, so divergent
    re-submissions of the same commit are never masked.

    Example:
        >>> raise DuplicateCommitError("Benchmark", "21cc017b")
    """

    def __init__(self, suite_name: str, commit_id: str) -> None:
        """Initialize DuplicateCommitError.

        Args:
            suite_name: Suite that already holds the commit.
            commit_id: The duplicated commit identifier.
        """
        self.suite_name = suite_name
        self.commit_id = commit_id
        super().__init__(f"Commit {commit_id} is already recorded for suite '{suite_name}'")


class DivisionByZeroError(BenchwatchError):
    """Raised when a baseline value of zero makes a relative change undefined.

    Only the affected benchmark is marked indeterminate; analysis of the
    remaining benchmarks continues.
    """

    def __init__(self, name: str) -> None:
        """Initialize DivisionByZeroError.

        Args:
            name: Canonical benchmark name with the zero baseline.
        """
        self.name = name
        super().__init__(f"Baseline for '{name}' is zero; relative change is undefined")


class NotFoundError(BenchwatchError):
    """Raised when a requested suite or commit is not recorded.

    Series queries never raise this; they return an empty series instead.
    """


class ConfigurationError(BenchwatchError):
    """Raised when configuration is invalid or missing.

    Example:
        >>> raise ConfigurationError("threshold_ratio must be greater than 1.0")
    """


class DataFileError(BenchwatchError):
    """Raised when a benchmark data file cannot be parsed."""
