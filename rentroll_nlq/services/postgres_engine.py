"""PostgreSQL data engine."""

import json
import logging
import time
from typing import Any

import asyncpg

from rentroll_nlq.models.query import ExecutionResult
from rentroll_nlq.models.schema import ColumnInfo, TableSchema
from rentroll_nlq.utils.exceptions import DataEngineError

logger = logging.getLogger("postgres-engine")

# Default PostgreSQL block size
PAGE_SIZE = 8192


def bytes_from_plan(plan: dict[str, Any], relation_pages: dict[str, int]) -> int:
    """Estimate bytes scanned from an ``EXPLAIN (FORMAT JSON)`` plan.

    Sequential scans read the whole relation, so they are charged its full
    size. Other nodes that touch a relation are charged rows times width.

    Args:
        plan: The ``Plan`` object of the explain output.
        relation_pages: Page counts keyed by relation name.

    Returns:
        Projected bytes scanned.
    """
    total = 0
    relation = plan.get("Relation Name")
    if relation:
        if plan.get("Node Type") == "Seq Scan" and relation in relation_pages:
            total += relation_pages[relation] * PAGE_SIZE
        else:
            total += int(plan.get("Plan Rows", 0) * plan.get("Plan Width", 0))

    for child in plan.get("Plans", []):
        total += bytes_from_plan(child, relation_pages)
    return total


def _relations(plan: dict[str, Any]) -> set[str]:
    found = {plan["Relation Name"]} if plan.get("Relation Name") else set()
    for child in plan.get("Plans", []):
        found |= _relations(child)
    return found


class PostgresEngine:
    """Planner-based estimates and read-only execution on PostgreSQL.

    PostgreSQL has no billed-bytes counter, so the planner estimate computed
    inside the execution transaction is reported as bytes processed.
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @classmethod
    async def connect(
        cls,
        dsn: str,
        min_size: int = 1,
        max_size: int = 10,
        ssl: bool = False,
        timeout: int = 30
    ) -> "PostgresEngine":
        """Create a connection pool and wrap it.

        Args:
            dsn: Database connection string.
            min_size: Minimum pool size.
            max_size: Maximum pool size.
            ssl: Whether to use SSL.
            timeout: Command timeout in seconds.

        Returns:
            A connected engine.
        """
        try:
            pool = await asyncpg.create_pool(
                dsn=dsn,
                min_size=min_size,
                max_size=max_size,
                ssl=ssl if ssl else None,
                command_timeout=timeout
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise DataEngineError(f"Could not connect to PostgreSQL: {e}") from e
        return cls(pool)

    async def estimate(self, sql: str, timeout: float) -> int:
        """Return the planner's projected bytes for ``sql``."""
        try:
            async with self.pool.acquire() as conn:
                return await self._estimate_on(conn, sql, timeout)
        except asyncpg.PostgresError as e:
            raise DataEngineError(f"PostgreSQL estimate failed: {e}") from e

    async def execute(self, sql: str, row_cap: int, timeout: float) -> ExecutionResult:
        """Run ``sql`` in a read-only transaction and fetch at most ``row_cap`` rows."""
        start_time = time.perf_counter()
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction(readonly=True):
                    await conn.execute(
                        f"SET LOCAL statement_timeout = '{int(timeout * 1000)}ms'"
                    )
                    bytes_processed = await self._estimate_on(conn, sql, timeout)
                    cursor = await conn.cursor(sql)
                    records = await cursor.fetch(row_cap)
        except asyncpg.QueryCanceledError as e:
            raise DataEngineError(f"PostgreSQL statement timed out after {timeout}s") from e
        except asyncpg.PostgresError as e:
            raise DataEngineError(f"PostgreSQL execution failed: {e}") from e

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        return ExecutionResult(
            rows=[dict(record) for record in records],
            bytes_processed=bytes_processed,
            elapsed_ms=elapsed_ms
        )

    async def describe(self, table: str, timeout: float) -> TableSchema:
        """Return columns and planner statistics of ``table``.

        Args:
            table: ``schema.table`` or a bare table name in ``public``.
            timeout: Statement timeout in seconds.

        Returns:
            Columns in ordinal order with approximate row count and size.
        """
        schema_name, _, table_name = table.replace('"', "").rpartition(".")
        schema_name = schema_name or "public"
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("""
                    SELECT
                        c.column_name,
                        c.data_type,
                        c.is_nullable,
                        col_description(
                            format('%I.%I', c.table_schema, c.table_name)::regclass,
                            c.ordinal_position
                        ) as description
                    FROM information_schema.columns c
                    WHERE c.table_schema = $1 AND c.table_name = $2
                    ORDER BY c.ordinal_position
                """, schema_name, table_name, timeout=timeout)
                if not rows:
                    raise DataEngineError(f"Table not found: {schema_name}.{table_name}")

                stats = await conn.fetchrow("""
                    SELECT
                        c.reltuples::bigint as num_rows,
                        pg_total_relation_size(c.oid) as num_bytes
                    FROM pg_class c
                    JOIN pg_namespace n ON n.oid = c.relnamespace
                    WHERE n.nspname = $1 AND c.relname = $2
                """, schema_name, table_name, timeout=timeout)
        except asyncpg.PostgresError as e:
            raise DataEngineError(f"Failed to get schema: {e}") from e

        return TableSchema(
            table=f"{schema_name}.{table_name}",
            columns=[
                ColumnInfo(
                    name=row["column_name"],
                    data_type=row["data_type"],
                    is_nullable=row["is_nullable"] == "YES",
                    description=row["description"]
                )
                for row in rows
            ],
            # reltuples is -1 for tables that were never analyzed
            num_rows=max(stats["num_rows"], 0) if stats else None,
            num_bytes=stats["num_bytes"] if stats else None
        )

    async def close(self) -> None:
        await self.pool.close()

    async def _estimate_on(self, conn: asyncpg.Connection, sql: str, timeout: float) -> int:
        raw = await conn.fetchval(f"EXPLAIN (FORMAT JSON) {sql}", timeout=timeout)
        explain = json.loads(raw) if isinstance(raw, str) else raw
        plan = explain[0]["Plan"]

        relation_pages: dict[str, int] = {}
        for relation in _relations(plan):
            pages = await conn.fetchval(
                "SELECT relpages FROM pg_class WHERE relname = $1 LIMIT 1",
                relation,
                timeout=timeout
            )
            relation_pages[relation] = int(pages or 0)

        return bytes_from_plan(plan, relation_pages)
