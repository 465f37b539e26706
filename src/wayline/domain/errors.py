"""Error taxonomy shared by planning, export and import."""

from __future__ import annotations


class WaylineError(Exception):
    """Base class for mission planning errors."""


class InvalidInputError(WaylineError, ValueError):
    """Raised for missing or degenerate shapes and non-positive parameters."""


class ArchiveFormatError(WaylineError, ValueError):
    """Raised when a mission file has no recognizable wayline document."""
