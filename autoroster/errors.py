"""Exception taxonomy shared by the engine, the editor and the boundary layer."""

from __future__ import annotations


class SchedulerError(Exception):
    """Base class for all autoroster errors."""

    status_code = 500


class ConfigurationError(SchedulerError):
    """A role template or configuration file is missing or malformed."""

    status_code = 500


class ValidationError(SchedulerError):
    """Input failed field validation or a hard per-assignment rule."""

    status_code = 400


class ConflictError(SchedulerError):
    """The change collides with existing data (overlap, stale version)."""

    status_code = 409


class GenerationInProgressError(ConflictError):
    """Another generation run already covers the requested range."""


class MaterializationError(SchedulerError):
    """Writing generated assignments failed; nothing was committed."""

    status_code = 500
