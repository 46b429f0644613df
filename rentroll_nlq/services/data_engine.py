"""Data engine interface and factory."""

import logging
from typing import Protocol, runtime_checkable

from rentroll_nlq.config import Settings
from rentroll_nlq.models.query import ExecutionResult
from rentroll_nlq.models.schema import TableSchema

logger = logging.getLogger("data-engine")


@runtime_checkable
class DataEngine(Protocol):
    """The operations the pipeline and tools need from a query engine.

    Implementations raise ``DataEngineError`` for rejections and transport
    failures.
    """

    async def estimate(self, sql: str, timeout: float) -> int:
        """Return projected bytes scanned without executing ``sql``."""
        ...

    async def execute(self, sql: str, row_cap: int, timeout: float) -> ExecutionResult:
        """Execute ``sql`` returning at most ``row_cap`` rows."""
        ...

    async def describe(self, table: str, timeout: float) -> TableSchema:
        """Return the columns and storage statistics of ``table``."""
        ...

    async def close(self) -> None:
        ...


async def create_engine(settings: Settings) -> DataEngine:
    """Build the data engine selected by ``settings.data_engine``.

    Args:
        settings: Application settings.

    Returns:
        A ready-to-use engine.
    """
    logger.info("Creating %s data engine", settings.data_engine)

    if settings.data_engine == "postgres":
        from rentroll_nlq.services.postgres_engine import PostgresEngine

        return await PostgresEngine.connect(
            dsn=settings.postgres_dsn,
            ssl=settings.postgres_ssl,
            timeout=settings.query_timeout
        )

    from rentroll_nlq.services.bigquery_engine import BigQueryEngine

    return BigQueryEngine(
        project=settings.bigquery_project,
        location=settings.bigquery_location
    )
