"""Error taxonomy for the scheduling engine and the import pipeline."""

from __future__ import annotations


class TaskLoopError(Exception):
    """Base exception for taskloop."""
    pass


class ConfigurationError(TaskLoopError):
    """Task scheduling fields are malformed (e.g. unknown interval unit)."""
    pass


class SchedulingError(TaskLoopError):
    """Weekday and exclusion rules leave no valid date to schedule on."""
    pass


class NotFoundError(TaskLoopError):
    """A task id did not resolve in the store."""
    pass


class TaskValidationError(TaskLoopError):
    """A task create/update request breaks a task rule."""
    pass


class ImportFailure(TaskLoopError):
    """Terminal failure of an import batch; nothing was written."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class FormatError(ImportFailure):
    """Payload could not be parsed into the interchange schema."""
    pass


class VersionError(ImportFailure):
    """Payload schema version is not the supported one."""
    pass


class ReferentialError(ImportFailure):
    """Payload references identifiers that are not part of the batch."""
    pass


class ResolutionError(TaskLoopError):
    """A conflict resolution choice is not one of SKIP, REPLACE, KEEP_BOTH."""
    pass
