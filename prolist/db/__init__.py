"""
Database module for the directory.

This module provides:
- Supabase client and row-level operations
"""

from .client import (
    DataStoreError,
    DatabaseClient,
    PROFILE_MATCH_COLUMNS,
    get_database_client,
    is_uuid,
)

__all__ = [
    "DataStoreError",
    "DatabaseClient",
    "PROFILE_MATCH_COLUMNS",
    "get_database_client",
    "is_uuid",
]
