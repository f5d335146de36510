"""
Tests for JSON Echo errors

Tests the exception hierarchy and OSError translation.
"""

import errno
from pathlib import Path

import pytest

from json_echo.core.errors import (
    ConfigError,
    DuplicateRouteError,
    ExternalResponseError,
    FileIOError,
    FileSystemError,
    InvalidRouteError,
    JsonEchoError,
    MalformedConfigError,
    MissingResultsFieldError,
    PathIsDirectoryError,
    PathNotFoundError,
    PathPermissionError,
    QueryError,
    from_os_error,
)


class TestHierarchy:
    """Test the exception families."""

    @pytest.mark.parametrize('error', [
        PathNotFoundError('a.json'),
        PathIsDirectoryError('dir'),
        PathPermissionError('a.json'),
        FileIOError('a.json', OSError('boom')),
    ])
    def test_filesystem_errors(self, error):
        """Test filesystem errors share a base and keep the path."""
        assert isinstance(error, FileSystemError)
        assert isinstance(error, JsonEchoError)
        assert isinstance(error.path, Path)

    @pytest.mark.parametrize('error', [
        MalformedConfigError('json-echo.json', 'bad'),
        InvalidRouteError('/api', 'bad'),
        DuplicateRouteError('[GET] /api'),
        ExternalResponseError('/api', 'r.json', PathNotFoundError('r.json')),
    ])
    def test_config_errors(self, error):
        """Test configuration errors share a base."""
        assert isinstance(error, ConfigError)
        assert isinstance(error, JsonEchoError)

    def test_query_error(self):
        """Test query errors and their message."""
        error = MissingResultsFieldError('[GET] /api/users/:id', 'items', 'field not found')

        assert isinstance(error, QueryError)
        assert error.field == 'items'
        assert 'items' in str(error)
        assert 'field not found' in str(error)


class TestMessages:
    """Test error messages carry their context."""

    def test_invalid_route(self):
        """Test the route key and reason are kept."""
        error = InvalidRouteError('/api/users', "'response' is a required field")

        assert error.key == '/api/users'
        assert "Invalid route '/api/users'" in str(error)

    def test_external_response(self):
        """Test the cause is kept."""
        cause = PathNotFoundError('missing.json')
        error = ExternalResponseError('/api', 'missing.json', cause)

        assert error.cause is cause
        assert 'missing.json' in str(error)


class TestFromOSError:
    """Test translating OSError subclasses."""

    def test_not_found(self):
        assert isinstance(from_os_error('x', FileNotFoundError()), PathNotFoundError)

    def test_is_directory(self):
        assert isinstance(from_os_error('x', IsADirectoryError()), PathIsDirectoryError)

    def test_permission(self):
        assert isinstance(from_os_error('x', PermissionError()), PathPermissionError)

    def test_other(self):
        """Test any other OSError becomes FileIOError with the cause kept."""
        cause = OSError(errno.EIO, 'I/O error')
        error = from_os_error('x', cause)

        assert isinstance(error, FileIOError)
        assert error.cause is cause
