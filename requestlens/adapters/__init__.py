"""
Raw dataset adapters.

Adapters normalize raw service-request exports into validated fact records.
They are the only place raw column names and cleaning rules are known.
"""

from .base_adapter import BaseAdapter
from .boston_311_adapter import Boston311Adapter

__all__ = ["BaseAdapter", "Boston311Adapter"]
