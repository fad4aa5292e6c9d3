"""
Raw data storage layer.

Raw 311 exports are loaded into DuckDB and read back in one bulk read per
analysis run.
"""

from functools import lru_cache

from requestlens.config import get_settings

from .base import RequestStore, StorageError
from .duckdb_storage import DuckDBRequestStore


@lru_cache
def get_store() -> RequestStore:
    """
    Get cached request store instance (singleton).

    Loads settings.data_csv_path into the raw table on first use when set.
    """
    settings = get_settings()
    store = DuckDBRequestStore(db_path=settings.db_path, table=settings.raw_table)
    if settings.data_csv_path:
        store.load_csv(settings.data_csv_path)
    return store


__all__ = [
    "RequestStore",
    "StorageError",
    "DuckDBRequestStore",
    "get_store",
]
