"""
Abstract storage interface for raw service-request data.

The analytics engine never touches storage directly: a driver performs one
bulk read per analysis run, normalizes the rows and hands the resulting fact
table to the report assembler.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

import pandas as pd


class StorageError(Exception):
    """Base exception for all storage operation failures."""


class RequestStore(ABC):
    """
    Abstract base class for raw request storage.

    Implementations must be safe to read from several threads and must
    wrap driver errors in StorageError.
    """

    @abstractmethod
    def load_csv(self, path: Union[str, Path]) -> int:
        """
        Replace the raw table with the contents of a CSV export.

        Args:
            path: CSV file path

        Returns:
            Number of rows loaded

        Raises:
            StorageError: If the file cannot be read or loaded
        """

    @abstractmethod
    def read_raw_requests(self) -> pd.DataFrame:
        """
        Bulk-read every raw request row.

        Returns:
            DataFrame with the raw export columns (empty if nothing is loaded)

        Raises:
            StorageError: If the read fails
        """

    @abstractmethod
    def count_raw_requests(self) -> int:
        """Number of raw rows currently stored."""
