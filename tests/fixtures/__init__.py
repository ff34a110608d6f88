# tests/fixtures/__init__.py
"""Shared pytest fixtures for nullmodel tests.

Available fixtures:
- nullmodel_server: in-process nullmodel server for testing
"""

from tests.fixtures.nullmodel import NullModelFixture, SSEFrame, nullmodel_server, parse_sse

__all__ = [
    "NullModelFixture",
    "SSEFrame",
    "nullmodel_server",
    "parse_sse",
]
