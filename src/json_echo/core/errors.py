"""
JSON Echo Errors

Exception hierarchy shared by the configuration loader, the filesystem layer
and the route store.

Families:
- FileSystemError: reading or writing files relative to the project root
- ConfigError: parsing and validating a configuration document
- QueryError: answering a lookup against a populated route store

A record that cannot be found is not an error: lookups return None.
"""

from pathlib import Path
from typing import Optional, Union


PathLike = Union[str, Path]


class JsonEchoError(Exception):
    """Base class for every error raised by json-echo."""


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------

class FileSystemError(JsonEchoError):
    """A file operation failed for `path`."""

    def __init__(self, path: PathLike, message: str):
        self.path = Path(path)
        super().__init__(message)


class PathNotFoundError(FileSystemError):
    def __init__(self, path: PathLike):
        super().__init__(path, f"Path not found: {path}")


class PathIsDirectoryError(FileSystemError):
    def __init__(self, path: PathLike):
        super().__init__(path, f"Expected a file but found a directory: {path}")


class PathPermissionError(FileSystemError):
    def __init__(self, path: PathLike):
        super().__init__(path, f"Permission denied for path: {path}")


class FileIOError(FileSystemError):
    """Any other OS-level failure. The original exception is kept in `cause`."""

    def __init__(self, path: PathLike, cause: BaseException):
        self.cause = cause
        super().__init__(path, f"I/O error accessing path '{path}': {cause}")


def from_os_error(path: PathLike, error: OSError) -> FileSystemError:
    """Translate an OSError raised for `path` into a FileSystemError."""
    if isinstance(error, FileNotFoundError):
        return PathNotFoundError(path)
    if isinstance(error, IsADirectoryError):
        return PathIsDirectoryError(path)
    if isinstance(error, PermissionError):
        return PathPermissionError(path)
    return FileIOError(path, error)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigError(JsonEchoError):
    """The configuration could not be loaded. Nothing was applied."""


class MalformedConfigError(ConfigError):
    """The document at `path` is not valid JSON or has the wrong top-level shape."""

    def __init__(self, path: PathLike, cause: Union[str, BaseException]):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Malformed configuration '{path}': {cause}")


class InvalidRouteError(ConfigError):
    """A route entry is missing a field or carries an invalid value."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid route '{key}': {reason}")


class DuplicateRouteError(ConfigError):
    """Two route keys normalize to the same (method, path) identity."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Duplicate route '{key}'")


class ExternalResponseError(ConfigError):
    """A file-reference response could not be read or parsed."""

    def __init__(self, key: str, path: PathLike, cause: BaseException):
        self.key = key
        self.path = Path(path)
        self.cause = cause
        super().__init__(
            f"Failed to resolve response file '{path}' for route '{key}': {cause}"
        )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

class QueryError(JsonEchoError):
    """A populated store could not answer a lookup for a model."""


class MissingResultsFieldError(QueryError):
    """`results_field` is absent from the model data or is not a list."""

    def __init__(self, model_key: str, field: str, reason: Optional[str] = None):
        self.model_key = model_key
        self.field = field
        message = f"Results field '{field}' missing for route '{model_key}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
