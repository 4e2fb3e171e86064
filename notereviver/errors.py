"""Error hierarchy for notereviver.

Every error derives from ReviverError and from the closest builtin, so
callers can catch either the fine-grained type or the standard one.
"""

from typing import Optional


class ReviverError(Exception):
    """Base class for all terminating reviver errors."""


class InputPathError(ReviverError, FileNotFoundError):
    """Raised when the input path is missing or of the wrong kind."""


class UnsupportedArchiveError(ReviverError, ValueError):
    """Raised when an input file has no recognized archive extension."""


class NoDocumentsError(ReviverError, ValueError):
    """Raised when no matching documents exist under the input directory."""


class NoPagesError(ReviverError, ValueError):
    """Raised when none of the documents declares an alias."""


class ToolNotFoundError(ReviverError, FileNotFoundError):
    """Raised when an external decompressor required for a format is missing."""


class ExtractionError(ReviverError, RuntimeError):
    """Raised when an archive cannot be extracted.

    exit_code holds the external decompressor's status, or None when a
    native zip/tar archive was rejected.
    """

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(ReviverError, ValueError):
    """Raised when the configuration file cannot be read or validated."""
