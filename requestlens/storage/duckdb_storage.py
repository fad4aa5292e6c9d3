"""
DuckDB storage implementation for raw service requests.

Holds the raw 311 export in a single table and serves the one bulk read each
analysis run performs. One root connection owns the database; each thread
works through its own cursor on it, as DuckDB connections must not be shared
across threads. Cursors share the root database, so ":memory:" stores are
visible from every thread.
"""

import re
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Union

import duckdb
import pandas as pd
import structlog

from .base import RequestStore, StorageError

logger = structlog.get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class DuckDBRequestStore(RequestStore):
    """
    DuckDB implementation of the raw request store.

    Attributes:
        db_path: Path to the DuckDB database file, or ":memory:"
        table: Raw table name
    """

    def __init__(self, db_path: str = "./data/requests.duckdb", table: str = "raw_311_data"):
        if not _IDENTIFIER.match(table):
            raise StorageError(f"Invalid table name: {table!r}")
        self.db_path = db_path
        self.table = table
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()
        try:
            self._root = duckdb.connect(db_path)
        except duckdb.Error as e:
            raise StorageError(f"Failed to open DuckDB at {db_path}: {e}") from e
        logger.info("duckdb_request_store_initialized", db_path=db_path, table=table)

    @contextmanager
    def _get_connection(self):
        """
        Get this thread's cursor on the root connection.

        Raises:
            StorageError: If connection cannot be established
        """
        if not hasattr(self._local, "connection"):
            try:
                self._local.connection = self._root.cursor()
                logger.debug("duckdb_connection_created", thread_id=threading.get_ident())
            except duckdb.Error as e:
                logger.error("duckdb_connection_failed", error=str(e))
                raise StorageError(f"Failed to connect to DuckDB: {e}") from e
        yield self._local.connection

    def _table_exists(self, conn) -> bool:
        row = conn.execute(
            "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
            [self.table],
        ).fetchone()
        return bool(row and row[0])

    def load_csv(self, path: Union[str, Path]) -> int:
        csv_path = Path(path)
        if not csv_path.exists():
            raise StorageError(f"CSV file not found: {csv_path}")

        try:
            with self._get_connection() as conn:
                literal = str(csv_path).replace("'", "''")
                conn.execute(
                    f"CREATE OR REPLACE TABLE {self.table} AS "
                    f"SELECT * FROM read_csv_auto('{literal}', header = true)"
                )
                count = conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0]
        except duckdb.Error as e:
            logger.error("raw_csv_load_failed", path=str(csv_path), error=str(e))
            raise StorageError(f"Failed to load {csv_path}: {e}") from e

        logger.info("raw_csv_loaded", path=str(csv_path), rows=count, table=self.table)
        return int(count)

    def load_dataframe(self, df: pd.DataFrame) -> int:
        """Replace the raw table with an in-memory frame."""
        try:
            with self._get_connection() as conn:
                conn.register("incoming_raw_requests", df)
                try:
                    conn.execute(
                        f"CREATE OR REPLACE TABLE {self.table} AS "
                        "SELECT * FROM incoming_raw_requests"
                    )
                finally:
                    conn.unregister("incoming_raw_requests")
        except duckdb.Error as e:
            logger.error("raw_dataframe_load_failed", error=str(e))
            raise StorageError(f"Failed to load raw requests: {e}") from e

        logger.info("raw_dataframe_loaded", rows=len(df), table=self.table)
        return len(df)

    def read_raw_requests(self) -> pd.DataFrame:
        try:
            with self._get_connection() as conn:
                if not self._table_exists(conn):
                    logger.warning("raw_table_missing", table=self.table)
                    return pd.DataFrame()
                df = conn.execute(f"SELECT * FROM {self.table}").df()
        except duckdb.Error as e:
            logger.error("raw_read_failed", error=str(e))
            raise StorageError(f"Failed to read raw requests: {e}") from e

        logger.info("raw_requests_read", rows=len(df), table=self.table)
        return df

    def count_raw_requests(self) -> int:
        try:
            with self._get_connection() as conn:
                if not self._table_exists(conn):
                    return 0
                return int(conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0])
        except duckdb.Error as e:
            raise StorageError(f"Failed to count raw requests: {e}") from e
