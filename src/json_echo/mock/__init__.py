"""
JSON Echo Mock Server Module

Mock HTTP server functionality for serving configured responses.

This module provides:
- FastAPI-based mock server
- Admin API for listing and reloading routes
"""

from .server import MockServer, MockConfig, create_mock_server

__all__ = [
    'MockServer',
    'MockConfig',
    'create_mock_server',
]
