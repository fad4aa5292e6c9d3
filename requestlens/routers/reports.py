"""
Report catalog and execution router.

Wired to:
- ReportAssembler for report execution
- get_fact_table for the shared fact table snapshot
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from requestlens.config import get_settings
from requestlens.engine.fact_table import FactTable
from requestlens.engine.report_assembler import ReportAssembler
from requestlens.models.reports import ReportParameters
from requestlens.services import get_fact_table
from requestlens.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def list_reports():
    """List the named reports with their output columns."""
    return {
        "success": True,
        "data": [info.model_dump(mode="json") for info in ReportAssembler.catalog()],
    }


@router.get("/{name}")
def run_report(
    name: str,
    min_group_size: Optional[int] = Query(None, ge=0, description="Minimum rows per group"),
    min_monthly_group_size: Optional[int] = Query(
        None, ge=0, description="Minimum rows per department-month group"
    ),
    rolling_window: Optional[int] = Query(None, ge=1, description="Rolling average window"),
    z_threshold: Optional[float] = Query(None, ge=0.0, description="Anomaly z-score threshold"),
    top_n: Optional[int] = Query(None, ge=1, description="Row limit for top-N reports"),
    decimals: Optional[int] = Query(None, ge=0, le=10, description="Presentation rounding"),
    table: FactTable = Depends(get_fact_table),
):
    """
    Run one named report over the current fact table.
    Query parameters override the configured report defaults.

    Unknown report names and engine failures propagate to the application's
    error handlers (404 and 422).
    """
    parameters = ReportParameters.from_settings(
        min_group_size=min_group_size,
        min_monthly_group_size=min_monthly_group_size,
        rolling_window=rolling_window,
        z_threshold=z_threshold,
        top_n=top_n,
        decimals=decimals,
    )
    assembler = ReportAssembler(table, max_workers=get_settings().report_max_workers)

    logger.info("report_request", report=name, input_rows=len(table))
    result = assembler.run(name, parameters)
    return {"success": True, "data": result.present()}
