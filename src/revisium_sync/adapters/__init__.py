"""Revision client package.

Provides the ``RevisionClient`` Protocol, pagination models, and the
``httpx``-based ``AsyncRevisiumClient``.

Usage:
    from revisium_sync.adapters import RevisionClient, AsyncRevisiumClient
"""

from revisium_sync.adapters.base import (
    Edge,
    MigrationResult,
    Page,
    PageInfo,
    RevisionClient,
)
from revisium_sync.adapters.http import AsyncRevisiumClient
from revisium_sync.adapters.pagination import fetch_all_pages

__all__ = [
    "RevisionClient",
    "AsyncRevisiumClient",
    "Page",
    "PageInfo",
    "Edge",
    "MigrationResult",
    "fetch_all_pages",
]
