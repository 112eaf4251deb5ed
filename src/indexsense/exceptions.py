"""
Package-level exception hierarchy for IndexSense.

All exceptions inherit from IndexSenseError, enabling:
- Catching all IndexSense errors with a single except clause
- Context fields for debugging (config_key, table, column, source)
- Structured serialization via to_dict() for JSON error responses

Hierarchy:
    IndexSenseError
    ├── DataSourceUnavailable   – No snapshot could be collected (fatal)
    ├── InsufficientData        – One column cannot be analyzed (recoverable)
    ├── InvalidConfiguration    – Thresholds or limits out of range (fatal)
    └── InternalInconsistency   – An upstream stage broke a model invariant (fatal)
"""

from __future__ import annotations

from typing import Any


class IndexSenseError(Exception):
    """
    Base exception for all IndexSense errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error responses."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Data Source Errors ───────────────────────────────────────────────────


class DataSourceUnavailable(IndexSenseError):
    """
    The statistics provider could not be reached or read.

    No snapshot means no report; the CLI maps this to exit code 1.

    Attributes:
        source: Description of the provider (DSN host, file path, ...).
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["source"] = self.source
        return result


class InsufficientData(IndexSenseError):
    """
    A single column lacks the data needed for analysis (e.g. an empty table).

    Raised per column. Callers skip the column, surface a warning, and
    carry on with the rest of the run.
    """

    def __init__(self, message: str, table: str, column: str) -> None:
        self.table = table
        self.column = column
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["table"] = self.table
        result["column"] = self.column
        return result


# ── Configuration Errors ─────────────────────────────────────────────────


class InvalidConfiguration(IndexSenseError):
    """
    Invalid advisor configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result


# ── Internal Errors ──────────────────────────────────────────────────────


class InternalInconsistency(IndexSenseError):
    """
    An upstream component produced a value that violates a model invariant.

    Indicates a programming defect rather than bad user input.

    Attributes:
        stage: The pipeline stage that detected the violation.
    """

    def __init__(self, message: str, stage: str | None = None) -> None:
        self.stage = stage
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["stage"] = self.stage
        return result
