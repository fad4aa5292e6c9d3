#!/usr/bin/env python3
"""
Run the named 311 reports over a CSV export and print them as JSON.

Loads the CSV into an in-memory DuckDB table, normalizes it with the Boston
311 adapter and runs one or every report.

Usage:
    python scripts/run_reports.py --csv data/311.csv
    python scripts/run_reports.py --csv data/311.csv --report volume_anomalies
    python scripts/run_reports.py --csv data/311.csv --min-group-size 50 --decimals 3
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from requestlens.adapters import Boston311Adapter  # noqa: E402
from requestlens.config import get_settings  # noqa: E402
from requestlens.engine import AnalyticsError, ReportAssembler  # noqa: E402
from requestlens.models.enums import ReportName  # noqa: E402
from requestlens.models.quality import DataQualityReport  # noqa: E402
from requestlens.models.reports import ReportParameters  # noqa: E402
from requestlens.services import FactTableLoader  # noqa: E402
from requestlens.storage import DuckDBRequestStore, StorageError  # noqa: E402
from requestlens.utils.logging import configure_logging  # noqa: E402


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Run 311 service request reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Reports:\n  " + "\n  ".join(name.value for name in ReportName),
    )
    parser.add_argument("--csv", required=True, help="Raw 311 CSV export")
    parser.add_argument(
        "--report",
        action="append",
        choices=[name.value for name in ReportName],
        help="Report to run (repeatable; default: all)",
    )
    parser.add_argument("--min-group-size", type=int, default=None)
    parser.add_argument("--min-monthly-group-size", type=int, default=None)
    parser.add_argument("--rolling-window", type=int, default=None)
    parser.add_argument("--z-threshold", type=float, default=None)
    parser.add_argument("--top-n", type=int, default=None)
    parser.add_argument("--decimals", type=int, default=None, help="Presentation rounding")
    parser.add_argument(
        "--workers", type=int, default=None, help="Thread pool size for running reports"
    )
    parser.add_argument("--log-level", default=None, help="Log level (logs go to stderr)")
    parser.add_argument("--log-format", choices=["json", "console"], default=None)
    return parser.parse_args()


def build_output(quality: DataQualityReport, results: dict) -> dict:
    """JSON payload for one run; identical input gives identical output."""
    return {
        "data_quality": quality.model_dump(mode="json", exclude={"batch_id"}),
        "reports": {name.value: result.present() for name, result in results.items()},
    }


def main() -> int:
    args = parse_args()
    configure_logging(level=args.log_level, fmt=args.log_format)
    settings = get_settings()

    parameters = ReportParameters.from_settings(
        settings,
        min_group_size=args.min_group_size,
        min_monthly_group_size=args.min_monthly_group_size,
        rolling_window=args.rolling_window,
        z_threshold=args.z_threshold,
        top_n=args.top_n,
        decimals=args.decimals,
    )

    try:
        store = DuckDBRequestStore(db_path=":memory:", table=settings.raw_table)
        store.load_csv(args.csv)
        table, quality = FactTableLoader(store, Boston311Adapter()).load()
    except (StorageError, ValueError) as e:
        print(f"Failed to load {args.csv}: {e}", file=sys.stderr)
        return 1

    assembler = ReportAssembler(
        table,
        parameters=parameters,
        max_workers=args.workers or settings.report_max_workers,
    )
    try:
        results = assembler.run_all(args.report)
    except AnalyticsError as e:
        print(f"Report failed: {e}", file=sys.stderr)
        return 2

    print(json.dumps(build_output(quality, results), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
