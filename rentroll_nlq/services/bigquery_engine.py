"""BigQuery data engine."""

import asyncio
import logging
import time
from typing import Any, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import bigquery

from rentroll_nlq.models.query import ExecutionResult
from rentroll_nlq.models.schema import ColumnInfo, TableSchema
from rentroll_nlq.utils.exceptions import DataEngineError

logger = logging.getLogger("bigquery-engine")


class BigQueryEngine:
    """Runs dry-run estimates and capped queries against BigQuery.

    The client library is synchronous, so calls are moved to worker threads.
    A cancelled execution triggers a best-effort job cancel; bytes already
    billed are not recoverable.
    """

    def __init__(
        self,
        project: Optional[str] = None,
        location: Optional[str] = None,
        client: Optional[bigquery.Client] = None
    ):
        """Initialize the engine.

        Args:
            project: GCP project, library default if None.
            location: Job location, library default if None.
            client: Pre-built client, mainly for tests.
        """
        self.client = client or bigquery.Client(project=project, location=location)

    async def estimate(self, sql: str, timeout: float) -> int:
        """Dry-run ``sql`` and return total bytes it would process.

        Args:
            sql: The query to estimate.
            timeout: API timeout in seconds.

        Returns:
            Projected bytes scanned.
        """
        job_config = bigquery.QueryJobConfig(dry_run=True, use_query_cache=False)
        try:
            job = await asyncio.to_thread(
                self.client.query, sql, job_config=job_config, timeout=timeout
            )
        except google_exceptions.GoogleAPIError as e:
            raise DataEngineError(f"BigQuery dry run failed: {e}") from e

        bytes_projected = int(job.total_bytes_processed or 0)
        logger.info("Dry run projected %d bytes", bytes_projected)
        return bytes_projected

    async def execute(self, sql: str, row_cap: int, timeout: float) -> ExecutionResult:
        """Run ``sql`` and fetch at most ``row_cap`` rows.

        Args:
            sql: The query to execute.
            row_cap: Maximum rows to fetch.
            timeout: Job and fetch timeout in seconds.

        Returns:
            Rows, billed bytes and elapsed time.
        """
        start_time = time.perf_counter()
        job_config = bigquery.QueryJobConfig(job_timeout_ms=int(timeout * 1000))

        try:
            job = await asyncio.to_thread(
                self.client.query, sql, job_config=job_config, timeout=timeout
            )
        except google_exceptions.GoogleAPIError as e:
            raise DataEngineError(f"BigQuery execution failed: {e}") from e

        try:
            rows = await asyncio.to_thread(self._fetch_rows, job, row_cap, timeout)
        except asyncio.CancelledError:
            logger.warning("Cancelling BigQuery job %s", job.job_id)
            asyncio.get_running_loop().run_in_executor(None, self._cancel_job, job)
            raise
        except (google_exceptions.GoogleAPIError, TimeoutError) as e:
            raise DataEngineError(f"BigQuery execution failed: {e}") from e

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        return ExecutionResult(
            rows=rows,
            bytes_processed=int(job.total_bytes_processed or 0),
            elapsed_ms=elapsed_ms
        )

    async def describe(self, table: str, timeout: float) -> TableSchema:
        """Fetch table metadata without scanning any rows.

        Args:
            table: ``dataset.table`` or ``project.dataset.table``, backticks allowed.
            timeout: API timeout in seconds.

        Returns:
            Columns in declared order plus row, byte and modification stats.
        """
        table_id = table.strip("`")
        try:
            metadata = await asyncio.to_thread(
                self.client.get_table, table_id, timeout=timeout
            )
        except google_exceptions.GoogleAPIError as e:
            raise DataEngineError(f"Failed to get schema: {e}") from e

        return TableSchema(
            table=table_id,
            columns=[
                ColumnInfo(
                    name=field.name,
                    data_type=field.field_type,
                    is_nullable=(field.mode or "NULLABLE") != "REQUIRED",
                    description=field.description
                )
                for field in metadata.schema
            ],
            num_rows=metadata.num_rows,
            num_bytes=metadata.num_bytes,
            last_modified=metadata.modified
        )

    async def close(self) -> None:
        await asyncio.to_thread(self.client.close)

    @staticmethod
    def _fetch_rows(job: Any, row_cap: int, timeout: float) -> list[dict[str, Any]]:
        row_iterator = job.result(timeout=timeout, max_results=row_cap)
        return [dict(row.items()) for row in row_iterator][:row_cap]

    @staticmethod
    def _cancel_job(job: Any) -> None:
        try:
            job.cancel()
        except google_exceptions.GoogleAPIError as e:
            logger.warning("Failed to cancel BigQuery job %s: %s", job.job_id, e)
