"""Capped, time-bounded query execution."""

import logging

from rentroll_nlq.models.query import ExecutionResult
from rentroll_nlq.services.data_engine import DataEngine
from rentroll_nlq.services.resilience import run_with_timeout
from rentroll_nlq.utils.constants import ErrorCode
from rentroll_nlq.utils.exceptions import DataEngineError, ExecutionError

logger = logging.getLogger("executor")


class QueryExecutor:
    """Runs validated, cost-approved queries. Single attempt, no retry."""

    def __init__(self, engine: DataEngine, row_cap: int = 1000, timeout: float = 30):
        if row_cap < 1:
            raise ValueError("row_cap must be positive")
        self.engine = engine
        self.row_cap = row_cap
        self.timeout = timeout

    async def execute(self, query_text: str) -> ExecutionResult:
        """Execute ``query_text`` under the row cap and timeout.

        Raises:
            ExecutionError: On timeout, engine rejection or transport failure.
        """
        try:
            result = await run_with_timeout(
                self.engine.execute(query_text, self.row_cap, self.timeout),
                self.timeout,
                lambda s: ExecutionError(
                    f"Query timed out after {s}s", code=ErrorCode.QUERY_TIMEOUT
                )
            )
        except DataEngineError as e:
            raise ExecutionError(e.message) from e

        if len(result.rows) > self.row_cap:
            logger.warning(
                "Engine returned %d rows, truncating to %d",
                len(result.rows), self.row_cap
            )
            result = result.model_copy(update={"rows": result.rows[:self.row_cap]})

        logger.info(
            "Query returned %d rows, %d bytes processed in %dms",
            len(result.rows), result.bytes_processed, result.elapsed_ms
        )
        return result
