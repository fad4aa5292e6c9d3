"""
Business logic layer.
Services orchestrate data access, normalization and report execution.
"""

from functools import lru_cache

from requestlens.engine.fact_table import FactTable
from requestlens.storage import get_store

from .fact_loader import FactTableLoader


@lru_cache
def get_fact_table() -> FactTable:
    """
    Get the cached fact table snapshot (singleton).

    The table is read and normalized once; call get_fact_table.cache_clear()
    after reloading the raw data.
    """
    table, _ = FactTableLoader(get_store()).load()
    return table


__all__ = ["FactTableLoader", "get_fact_table"]
