"""
JSON Echo Core

Configuration loading and the in-memory route store behind the mock server.

This module provides:
- Project root discovery and atomic file access
- Configuration parsing, validation and response-file resolution
- Route key normalization and path pattern matching
- The read-only route store and its swappable handle
"""

from .errors import (
    JsonEchoError,
    FileSystemError,
    PathNotFoundError,
    PathIsDirectoryError,
    PathPermissionError,
    FileIOError,
    ConfigError,
    MalformedConfigError,
    InvalidRouteError,
    DuplicateRouteError,
    ExternalResponseError,
    QueryError,
    MissingResultsFieldError,
)
from .filesystem import FileSystemManager, find_root, ROOT_MARKERS
from .routing import PathPattern, compile_pattern, normalize_route_key, route_identifier
from .config import (
    ConfigLoader,
    Configuration,
    RouteDefinition,
    InlineResponse,
    FileResponse,
    DEFAULT_CONFIG_FILE,
    default_configuration,
)
from .store import Model, RouteStore, StoreHandle

__all__ = [
    # Errors
    'JsonEchoError',
    'FileSystemError',
    'PathNotFoundError',
    'PathIsDirectoryError',
    'PathPermissionError',
    'FileIOError',
    'ConfigError',
    'MalformedConfigError',
    'InvalidRouteError',
    'DuplicateRouteError',
    'ExternalResponseError',
    'QueryError',
    'MissingResultsFieldError',

    # Filesystem
    'FileSystemManager',
    'find_root',
    'ROOT_MARKERS',

    # Routing
    'PathPattern',
    'compile_pattern',
    'normalize_route_key',
    'route_identifier',

    # Configuration
    'ConfigLoader',
    'Configuration',
    'RouteDefinition',
    'InlineResponse',
    'FileResponse',
    'DEFAULT_CONFIG_FILE',
    'default_configuration',

    # Store
    'Model',
    'RouteStore',
    'StoreHandle',
]
