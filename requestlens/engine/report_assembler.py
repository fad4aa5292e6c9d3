"""
Report Assembler - runs named report pipelines over a fact table snapshot.

Each report is a pure function of the fact table and its parameters. The
assembler resolves the report from the catalog, runs its pipeline, projects
the rows onto the documented columns and wraps them in a ReportResult.

Failures are atomic: any AnalyticsError raised inside a pipeline gets the
report name attached to its context and propagates unchanged in type. There
is no partial-result mode.

Concurrency:
    run_all() fans reports out to a thread pool. The fact table and the
    engines are read-only, so no synchronization is needed beyond sharing
    the table handle. Results are returned in catalog order regardless of
    completion order.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, Union

import structlog

from requestlens.engine.errors import AnalyticsError, UnknownReportError
from requestlens.engine.fact_table import FactTable
from requestlens.engine.report_catalog import REPORTS, ReportDefinition, ReportEngines
from requestlens.models.enums import ReportName
from requestlens.models.reports import ReportInfo, ReportParameters, ReportResult

logger = structlog.get_logger()


class ReportAssembler:
    """
    Orchestrates named reports over one immutable fact table.

    Attributes:
        table: Fact table snapshot shared by all reports
        parameters: Default parameters for every run
        max_workers: Thread pool size for run_all

    Example:
        >>> assembler = ReportAssembler(table, ReportParameters(min_group_size=50))
        >>> result = assembler.run("sla_by_department")
        >>> results = assembler.run_all()
    """

    def __init__(
        self,
        table: FactTable,
        parameters: Optional[ReportParameters] = None,
        max_workers: int = 4,
        engines: Optional[ReportEngines] = None,
    ):
        self.table = table
        self.parameters = parameters or ReportParameters()
        self.max_workers = max_workers
        self.engines = engines or ReportEngines()
        self.logger = structlog.get_logger()

    @staticmethod
    def catalog() -> list[ReportInfo]:
        return [definition.info() for definition in REPORTS.values()]

    @staticmethod
    def resolve(name: Union[str, ReportName]) -> ReportDefinition:
        """
        Look up a report definition.

        Raises:
            UnknownReportError: If the name is not in the catalog
        """
        try:
            return REPORTS[ReportName(name)]
        except ValueError as e:
            raise UnknownReportError(
                f"Unknown report '{name}'", available=sorted(r.value for r in REPORTS)
            ) from e

    def run(
        self,
        name: Union[str, ReportName],
        parameters: Optional[ReportParameters] = None,
    ) -> ReportResult:
        """
        Run one report.

        Args:
            name: Report name
            parameters: Overrides the assembler's default parameters

        Returns:
            ReportResult with raw values, ordered per the report's sort keys

        Raises:
            UnknownReportError: If the report does not exist
            AnalyticsError: Any engine failure, with the report name in its context
        """
        definition = self.resolve(name)
        params = parameters or self.parameters
        log = self.logger.bind(report=definition.name.value)
        log.info("report_started", input_rows=len(self.table))

        try:
            rows = definition.build(self.table, params, self.engines)
        except AnalyticsError as e:
            e.with_context(report=definition.name.value)
            log.error("report_failed", error=str(e), error_type=type(e).__name__)
            raise

        projected = [{column: row.get(column) for column in definition.columns} for row in rows]
        log.info("report_completed", row_count=len(projected))

        return ReportResult(
            report=definition.name,
            title=definition.title,
            columns=list(definition.columns),
            rows=projected,
            parameters=params,
            extra_precision=dict(definition.extra_precision),
        )

    def run_all(
        self,
        names: Optional[Iterable[Union[str, ReportName]]] = None,
        parameters: Optional[ReportParameters] = None,
        max_workers: Optional[int] = None,
    ) -> dict[ReportName, ReportResult]:
        """
        Run several reports concurrently.

        Args:
            names: Reports to run (default: the whole catalog)
            parameters: Parameters for every report
            max_workers: Overrides the assembler's thread pool size

        Returns:
            Results keyed by report name, in requested order

        Raises:
            AnalyticsError: The first failing report's error, in requested order
        """
        selected = [self.resolve(n).name for n in (names if names is not None else REPORTS)]
        workers = max_workers or self.max_workers

        self.logger.info("report_batch_started", reports=len(selected), max_workers=workers)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {name: executor.submit(self.run, name, parameters) for name in selected}
            results = {name: futures[name].result() for name in selected}

        self.logger.info("report_batch_completed", reports=len(results))
        return results
