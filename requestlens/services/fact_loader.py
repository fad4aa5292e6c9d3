"""
Fact table loading - one bulk read, one normalization pass.
"""

from typing import Optional

import structlog

from requestlens.adapters.base_adapter import BaseAdapter
from requestlens.adapters.boston_311_adapter import Boston311Adapter
from requestlens.engine.fact_table import FactTable
from requestlens.models.quality import DataQualityReport
from requestlens.storage.base import RequestStore

logger = structlog.get_logger()


class FactTableLoader:
    """
    Builds the fact table snapshot for an analysis run.

    Attributes:
        store: Raw request store
        adapter: Normalization adapter (default: Boston311Adapter)
    """

    def __init__(self, store: RequestStore, adapter: Optional[BaseAdapter] = None):
        self.store = store
        self.adapter = adapter or Boston311Adapter()
        self.logger = structlog.get_logger()

    def load(self) -> tuple[FactTable, DataQualityReport]:
        """
        Read all raw rows, normalize them and materialize the fact table.

        Raises:
            StorageError: If the bulk read fails
            ValueError: If the raw export lacks a required column
        """
        raw_df = self.store.read_raw_requests()
        records, report = self.adapter.normalize(raw_df)

        table = FactTable.from_records(records)
        self.logger.info(
            "fact_table_loaded",
            records=len(table),
            rejected=report.rejected_records,
            quality_score=report.overall_quality_score,
        )
        return table, report
