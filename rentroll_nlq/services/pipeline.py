"""Cost-guarded natural language query pipeline.

The pipeline is a finite-state machine with one handler per stage::

    RECEIVED -> TRANSLATING -> VALIDATING -> ESTIMATING_COST -> EXECUTING
             -> NARRATING (optional) -> COMPLETED

``REJECTED`` is reached from VALIDATING and ESTIMATING_COST, ``FAILED`` from
any stage. Each handler returns a ``StageOutcome`` and ``_drive`` is the only
place that decides whether a failure is absorbed or surfaced.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from rentroll_nlq.config import Settings
from rentroll_nlq.models.outcome import OutcomeKind, StageOutcome
from rentroll_nlq.models.query import (
    CostEstimate,
    ExecutionResult,
    GeneratedQuery,
    QueryRequest,
    QueryResponse,
    ValidationVerdict,
)
from rentroll_nlq.services.ai_client import AIClient
from rentroll_nlq.services.cost_guard import CostGuard
from rentroll_nlq.services.data_engine import DataEngine
from rentroll_nlq.services.executor import QueryExecutor
from rentroll_nlq.services.narrator import Narrator
from rentroll_nlq.services.sql_validator import SQLValidator
from rentroll_nlq.services.translator import QueryTranslator
from rentroll_nlq.services.validator import QueryValidator
from rentroll_nlq.utils.constants import DEFAULT_SESSION_ID
from rentroll_nlq.utils.exceptions import (
    CostExceeded,
    InvalidRequestError,
    NarrationError,
    NLQueryError,
    PipelineError,
    RequestTimeoutError,
    ValidationRejected,
)

logger = logging.getLogger("pipeline")


class PipelineState(str, Enum):
    """Pipeline states."""

    RECEIVED = "received"
    TRANSLATING = "translating"
    VALIDATING = "validating"
    ESTIMATING_COST = "estimating_cost"
    EXECUTING = "executing"
    NARRATING = "narrating"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


TERMINAL_STATES = frozenset({
    PipelineState.COMPLETED,
    PipelineState.REJECTED,
    PipelineState.FAILED,
})

_FORWARD = {
    PipelineState.RECEIVED: PipelineState.TRANSLATING,
    PipelineState.TRANSLATING: PipelineState.VALIDATING,
    PipelineState.VALIDATING: PipelineState.ESTIMATING_COST,
    PipelineState.ESTIMATING_COST: PipelineState.EXECUTING,
    PipelineState.NARRATING: PipelineState.COMPLETED,
}

# Where each stage's value is recorded on the run
_RESULT_FIELDS = {
    PipelineState.TRANSLATING: "generated",
    PipelineState.VALIDATING: "verdict",
    PipelineState.ESTIMATING_COST: "estimate",
    PipelineState.EXECUTING: "result",
    PipelineState.NARRATING: "explanation",
}

_REJECTIONS = (ValidationRejected, CostExceeded)


@dataclass
class PipelineRun:
    """State of a single request. Never shared between requests."""

    request: QueryRequest
    started_at: float
    state: PipelineState = PipelineState.RECEIVED
    history: list[PipelineState] = field(default_factory=list)
    generated: Optional[GeneratedQuery] = None
    verdict: Optional[ValidationVerdict] = None
    estimate: Optional[CostEstimate] = None
    result: Optional[ExecutionResult] = None
    explanation: Optional[str] = None
    execution_time_ms: int = 0


class NLQueryPipeline:
    """Turns a question into a bounded-cost, executed result."""

    def __init__(
        self,
        translator: QueryTranslator,
        validator: QueryValidator,
        cost_guard: CostGuard,
        executor: QueryExecutor,
        narrator: Narrator,
        request_timeout: float = 120,
        include_explanation_default: bool = True
    ):
        """Initialize the pipeline.

        Args:
            translator: Question to candidate query.
            validator: Safety and quality verdict.
            cost_guard: Dry-run estimate and ceiling check.
            executor: Capped execution.
            narrator: Best-effort explanation.
            request_timeout: Deadline for the whole run in seconds.
            include_explanation_default: Used when the caller does not say.
        """
        self.translator = translator
        self.validator = validator
        self.cost_guard = cost_guard
        self.executor = executor
        self.narrator = narrator
        self.request_timeout = request_timeout
        self.include_explanation_default = include_explanation_default

        self._handlers = {
            PipelineState.RECEIVED: self._receive,
            PipelineState.TRANSLATING: self._translate,
            PipelineState.VALIDATING: self._validate,
            PipelineState.ESTIMATING_COST: self._estimate_cost,
            PipelineState.EXECUTING: self._execute,
            PipelineState.NARRATING: self._narrate,
        }

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        ai_client: AIClient,
        engine: DataEngine
    ) -> "NLQueryPipeline":
        """Wire every stage from one settings object.

        Args:
            settings: Application settings.
            ai_client: Shared text generation client.
            engine: Shared data engine.

        Returns:
            A configured pipeline.
        """
        sql_validator = SQLValidator(
            dialect=settings.sql_dialect,
            allowed_statements=set(settings.allowed_statements),
            blocked_tables=set(settings.get_blocked_tables())
        )
        return cls(
            translator=QueryTranslator(
                ai_client,
                table=settings.dataset_table,
                dialect=settings.sql_dialect,
                temperature=settings.translation_temperature,
                max_tokens=settings.translation_max_tokens,
                timeout=settings.openai_timeout
            ),
            validator=QueryValidator(
                sql_validator,
                ai_client=ai_client,
                mode=settings.validation_mode,
                model=settings.review_model,
                temperature=settings.validation_temperature,
                max_tokens=settings.validation_max_tokens,
                timeout=settings.openai_timeout
            ),
            cost_guard=CostGuard(
                engine,
                max_bytes=settings.max_bytes,
                timeout=settings.estimate_timeout
            ),
            executor=QueryExecutor(
                engine,
                row_cap=settings.max_result_rows,
                timeout=settings.query_timeout
            ),
            narrator=Narrator(
                ai_client,
                temperature=settings.narration_temperature,
                max_tokens=settings.narration_max_tokens,
                timeout=settings.narration_timeout,
                max_rows=settings.narration_max_rows
            ),
            request_timeout=settings.request_timeout,
            include_explanation_default=settings.include_explanation_default
        )

    async def run_query(
        self,
        prompt: str,
        session_id: Optional[str] = None,
        include_explanation: Optional[bool] = None,
        context: Optional[str] = None
    ) -> QueryResponse:
        """Answer ``prompt`` with an executed, cost-checked query.

        Args:
            prompt: Natural language question, 3 to 500 characters.
            session_id: Caller session id, "anonymous" if absent.
            include_explanation: Narrate the rows; configured default if None.
            context: Prior conversation context for the translator.

        Returns:
            The assembled response.

        Raises:
            InvalidRequestError: Bad input; raised before any external call.
            TranslationError: The model returned no usable query.
            ValidationRejected: The query failed safety or quality checks.
            CostExceeded: The dry run projected more than the ceiling.
            ExecutionError: Estimation or execution failed or timed out.
            RequestTimeoutError: The whole run exceeded its deadline.
            PipelineError: Any unexpected failure.
        """
        request = self._build_request(prompt, session_id, include_explanation, context)
        run = PipelineRun(request=request, started_at=time.perf_counter())

        try:
            return await asyncio.wait_for(self._drive(run), timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            logger.error(
                "NL query timed out after %ss during %s",
                self.request_timeout, run.state.value
            )
            run.state = PipelineState.FAILED
            raise RequestTimeoutError(self.request_timeout) from e

    def _build_request(
        self,
        prompt: str,
        session_id: Optional[str],
        include_explanation: Optional[bool],
        context: Optional[str]
    ) -> QueryRequest:
        if include_explanation is None:
            include_explanation = self.include_explanation_default
        try:
            return QueryRequest(
                prompt=prompt,
                session_id=session_id,
                include_explanation=include_explanation,
                context=context
            )
        except ValidationError as e:
            errors = [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            raise InvalidRequestError("Invalid query request", errors=errors) from e

    async def _drive(self, run: PipelineRun) -> QueryResponse:
        while run.state not in TERMINAL_STATES:
            state = run.state
            run.history.append(state)
            outcome = await self._run_stage(state, run)

            if outcome.kind is OutcomeKind.FATAL:
                run.state = (
                    PipelineState.REJECTED
                    if isinstance(outcome.error, _REJECTIONS)
                    else PipelineState.FAILED
                )
                self._log_terminal(run, state, outcome.error)
                raise outcome.error

            if outcome.kind is OutcomeKind.RECOVERABLE:
                logger.warning(
                    "Stage %s degraded, continuing without it: %s",
                    state.value, outcome.error.message
                )

            if state in _RESULT_FIELDS:
                setattr(run, _RESULT_FIELDS[state], outcome.value)
            if state is PipelineState.EXECUTING:
                run.execution_time_ms = int((time.perf_counter() - run.started_at) * 1000)

            run.state = self._next_state(state, run)

        return self._assemble(run)

    async def _run_stage(self, state: PipelineState, run: PipelineRun) -> StageOutcome:
        try:
            return await self._handlers[state](run)
        except NLQueryError as e:
            return StageOutcome.fatal(e)
        except Exception as e:
            logger.exception("Unexpected error during %s", state.value)
            return StageOutcome.fatal(
                PipelineError(f"Failed to process natural language query: {e}")
            )

    def _next_state(self, state: PipelineState, run: PipelineRun) -> PipelineState:
        if state is PipelineState.EXECUTING:
            if run.request.include_explanation and run.result.rows:
                return PipelineState.NARRATING
            return PipelineState.COMPLETED
        return _FORWARD[state]

    async def _receive(self, run: PipelineRun) -> StageOutcome:
        logger.info(
            "Processing NL query (session=%s): %s",
            run.request.session_id or DEFAULT_SESSION_ID, run.request.prompt
        )
        return StageOutcome.ok(run.request)

    async def _translate(self, run: PipelineRun) -> StageOutcome:
        generated = await self.translator.translate(run.request.prompt, run.request.context)
        return StageOutcome.ok(generated)

    async def _validate(self, run: PipelineRun) -> StageOutcome:
        verdict = await self.validator.validate(run.generated.query_text)
        if not verdict.is_valid:
            return StageOutcome.fatal(ValidationRejected(
                verdict.issues,
                verdict.suggestions,
                sql=run.generated.query_text
            ))
        return StageOutcome.ok(verdict)

    async def _estimate_cost(self, run: PipelineRun) -> StageOutcome:
        estimate = await self.cost_guard.estimate(run.generated.query_text)
        return StageOutcome.ok(self.cost_guard.check(estimate))

    async def _execute(self, run: PipelineRun) -> StageOutcome:
        result = await self.executor.execute(run.generated.query_text)
        return StageOutcome.ok(result)

    async def _narrate(self, run: PipelineRun) -> StageOutcome:
        try:
            explanation = await self.narrator.narrate(
                run.request.prompt,
                run.generated.query_text,
                run.result.rows
            )
        except NarrationError as e:
            return StageOutcome.recoverable(None, e)
        return StageOutcome.ok(explanation)

    def _assemble(self, run: PipelineRun) -> QueryResponse:
        response = QueryResponse(
            data=run.result.rows,
            query_text=run.generated.query_text,
            explanation=run.explanation,
            execution_time_ms=run.execution_time_ms,
            bytes_processed=run.result.bytes_processed,
            cached=False,
            session_id=run.request.session_id or DEFAULT_SESSION_ID
        )
        logger.info(
            "NL query completed: states=%s, execution_time_ms=%d, bytes_processed=%d, rows=%d",
            "->".join(s.value for s in run.history),
            response.execution_time_ms, response.bytes_processed, len(response.data)
        )
        return response

    @staticmethod
    def _log_terminal(run: PipelineRun, state: PipelineState, error: NLQueryError) -> None:
        if isinstance(error, ValidationRejected):
            logger.info("Query rejected during %s: %s", state.value, error.issues)
        elif isinstance(error, CostExceeded):
            logger.warning(
                "Query rejected during %s: projected %d bytes over %d",
                state.value, error.projected, error.max_bytes
            )
        else:
            logger.error(
                "NL query failed during %s: [%s] %s",
                state.value, error.code.value, error.message
            )
