"""Cost estimation and the bytes-scanned guardrail."""

import logging

from rentroll_nlq.models.query import CostEstimate
from rentroll_nlq.services.data_engine import DataEngine
from rentroll_nlq.services.resilience import run_with_timeout
from rentroll_nlq.utils.constants import DEFAULT_MAX_BYTES
from rentroll_nlq.utils.exceptions import (
    CostEstimationError,
    CostExceeded,
    DataEngineError,
)

logger = logging.getLogger("cost-guard")


class CostGuard:
    """Dry-run estimator plus the ceiling check that gates execution.

    There is no switch to skip the check.
    """

    def __init__(
        self,
        engine: DataEngine,
        max_bytes: int = DEFAULT_MAX_BYTES,
        timeout: float = 15
    ):
        if max_bytes < 0:
            raise ValueError("max_bytes must be non-negative")
        self.engine = engine
        self.max_bytes = max_bytes
        self.timeout = timeout

    async def estimate(self, query_text: str) -> CostEstimate:
        """Ask the engine for projected bytes without executing.

        Raises:
            CostEstimationError: If the dry run fails, times out or returns
                an unusable projection.
        """
        try:
            bytes_projected = await run_with_timeout(
                self.engine.estimate(query_text, self.timeout),
                self.timeout,
                lambda s: CostEstimationError(f"Cost estimate timed out after {s}s")
            )
        except DataEngineError as e:
            raise CostEstimationError(e.message) from e

        try:
            projected = int(bytes_projected)
        except (TypeError, ValueError) as e:
            raise CostEstimationError(
                f"Engine returned an unusable byte projection: {bytes_projected!r}"
            ) from e
        if projected < 0:
            raise CostEstimationError(
                f"Engine returned a negative byte projection: {projected}"
            )

        return CostEstimate(bytes_projected=projected)

    def check(self, estimate: CostEstimate) -> CostEstimate:
        """Reject ``estimate`` if it is over the ceiling.

        Raises:
            CostExceeded: If projected bytes exceed ``max_bytes``.
        """
        if estimate.bytes_projected > self.max_bytes:
            logger.warning(
                "Query exceeds byte limit: %d > %d",
                estimate.bytes_projected, self.max_bytes
            )
            raise CostExceeded(estimate.bytes_projected, self.max_bytes)
        return estimate

    async def enforce(self, query_text: str) -> CostEstimate:
        """Estimate and check in one step."""
        return self.check(await self.estimate(query_text))
