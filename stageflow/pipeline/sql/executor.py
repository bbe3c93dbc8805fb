"""
SQL Executor
Adapter over the embedded analytical engine (DuckDB)

One connection per session. DDL is not re-entrant, so every call goes
through a single lock. Engine failures are re-raised as EngineError with
the engine's own message; error codes are not interpreted.
"""
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

import duckdb

from stageflow.core.errors import EngineError
from stageflow.models.table import ColumnSchema

logger = logging.getLogger(__name__)


class AnalyticalEngine(Protocol):
    def describe(self, table_name: str) -> List[ColumnSchema]: ...

    def query(self, sql: str) -> Dict[str, Any]: ...

    def create_or_replace_table(self, table_name: str, sql: str) -> None: ...

    def drop_table(self, table_name: str) -> None: ...

    def count_rows(self, table_name: str) -> int: ...

    def table_exists(self, table_name: str) -> bool: ...

    def load_csv(self, table_name: str, path: Union[str, Path]) -> None: ...

    def create_table_from_rows(self, table_name: str, columns: List[ColumnSchema], rows: List[List[Any]]) -> None: ...

    def promote_table(self, staging_name: str, table_name: str, views: Optional[Dict[str, str]] = None) -> None: ...


class DuckDBEngine:
    """
    DuckDB implementation of the analytical engine interface

    Usage:
        engine = DuckDBEngine(":memory:")
        engine.create_or_replace_table("t", "SELECT 1 AS x")
        engine.describe("t")  # [ColumnSchema(name="x", type="INTEGER")]
    """

    def __init__(self, database: str = ":memory:"):
        self.database = database
        self._conn = duckdb.connect(database)
        self._lock = threading.Lock()
        logger.info(f"DuckDB engine opened ({database})")

    def _execute(self, sql: str, params: Optional[Sequence[Any]] = None):
        with self._lock:
            try:
                if params is None:
                    return self._conn.execute(sql)
                return self._conn.execute(sql, params)
            except duckdb.Error as e:
                raise EngineError(str(e)) from e

    def query(self, sql: str) -> Dict[str, Any]:
        """
        Run a query and return JSON-friendly results

        Returns:
            {"columns": [...], "rows": [{col: value}, ...]}
        """
        with self._lock:
            try:
                rs = self._conn.execute(sql)
                cols = [d[0] for d in rs.description] if rs.description else []
                rows = [dict(zip(cols, row)) for row in rs.fetchall()]
            except duckdb.Error as e:
                raise EngineError(str(e)) from e
        return {"columns": cols, "rows": rows}

    def describe(self, table_name: str) -> List[ColumnSchema]:
        with self._lock:
            try:
                rows = self._conn.execute(f"DESCRIBE {table_name}").fetchall()
            except duckdb.Error as e:
                raise EngineError(str(e)) from e
        # DESCRIBE: column_name, column_type, null, key, default, extra
        return [ColumnSchema(name=r[0], type=str(r[1])) for r in rows]

    def create_or_replace_table(self, table_name: str, sql: str) -> None:
        self._execute(f"CREATE OR REPLACE TABLE {table_name} AS {sql}")

    def drop_table(self, table_name: str) -> None:
        self._execute(f"DROP TABLE IF EXISTS {table_name}")

    def count_rows(self, table_name: str) -> int:
        with self._lock:
            try:
                row = self._conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()
            except duckdb.Error as e:
                raise EngineError(str(e)) from e
        return int(row[0]) if row else 0

    def table_exists(self, table_name: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
                [table_name],
            ).fetchone()
        return bool(row and row[0])

    def load_csv(self, table_name: str, path: Union[str, Path]) -> None:
        """Create a table from a CSV file using DuckDB's type sniffing"""
        csv_path = str(path).replace("'", "''")
        self._execute(
            f"CREATE OR REPLACE TABLE {table_name} AS "
            f"SELECT * FROM read_csv_auto('{csv_path}', header=true)"
        )

    def create_table_from_rows(
        self,
        table_name: str,
        columns: List[ColumnSchema],
        rows: List[List[Any]],
    ) -> None:
        """Create (or replace) a table from column definitions and row values"""
        if not columns:
            raise EngineError(f"Table '{table_name}' needs at least one column")
        cols_sql = ", ".join(f'"{c.name}" {c.type}' for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        with self._lock:
            try:
                self._conn.execute("BEGIN TRANSACTION")
                self._conn.execute(f"CREATE OR REPLACE TABLE {table_name} ({cols_sql})")
                if rows:
                    self._conn.executemany(f"INSERT INTO {table_name} VALUES ({placeholders})", rows)
                self._conn.execute("COMMIT")
            except duckdb.Error as e:
                self._rollback(f"load of {table_name}")
                raise EngineError(str(e)) from e

    def promote_table(self, staging_name: str, table_name: str, views: Optional[Dict[str, str]] = None) -> None:
        """
        Move a fully built staging table into place

        Drops `table_name`, renames the staging table to it and (re)creates
        `views` in one transaction. On failure the previous table is intact
        and the staging table is still there for the caller to discard.
        """
        with self._lock:
            try:
                self._conn.execute("BEGIN TRANSACTION")
                self._conn.execute(f"DROP TABLE IF EXISTS {table_name}")
                self._conn.execute(f"ALTER TABLE {staging_name} RENAME TO {table_name}")
                for view_name, sql in (views or {}).items():
                    self._conn.execute(f"CREATE OR REPLACE VIEW {view_name} AS {sql}")
                self._conn.execute("COMMIT")
            except duckdb.Error as e:
                self._rollback(f"promotion of {staging_name}")
                raise EngineError(str(e)) from e

    def _rollback(self, what: str) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except duckdb.Error as rollback_err:
            logger.warning(f"Rollback after failed {what} failed: {rollback_err}")

    def close(self) -> None:
        with self._lock:
            self._conn.close()
