"""
Exception types raised by the outline document model.

Library code raises these; workflow commands and API handlers catch them and
turn them into ``{"status": "error", ...}`` results.
"""


class OrgGtdError(Exception):
    """Base class for all org-gtd errors."""


class FieldValidationError(OrgGtdError, ValueError):
    """A single field write was rejected before any line was touched."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class HeadingNotFoundError(OrgGtdError):
    """No heading at or above the requested line, or no heading with the given id."""


class StructuralError(OrgGtdError):
    """The document layout around a heading is malformed (e.g. drawer without :END:)."""
