"""Exception hierarchy for encode jobs.

Everything raised on purpose by passenc derives from ``EncoderError`` so callers
can catch one type at the job boundary.
"""
from typing import Optional


class EncoderError(Exception):
    """Base error for all passenc operations."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(EncoderError):
    """Invalid job or application configuration (e.g. a pass count below 1)."""


class ExecutionFailure(EncoderError):
    """The encoder process exited with a nonzero code or could not be spawned."""

    def __init__(self, message: str, code: int = 1, command: Optional[list] = None):
        super().__init__(message)
        self.code = code
        self.command = command


class EncodingError(EncoderError):
    """A job failed; wraps the first pass failure."""

    def __init__(self, message: str, code: int = 1):
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        cause = self.__cause__
        if cause is not None:
            return f"{self.message}: {cause}"
        return self.message


class WorkspaceError(EncoderError):
    """Scratch directory could not be created or removed."""


class ProbeError(EncoderError):
    """ffprobe failed or returned unusable data."""
