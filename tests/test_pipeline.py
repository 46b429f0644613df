"""Tests for the query pipeline state machine."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from rentroll_nlq.config import Settings
from rentroll_nlq.models.query import Complexity, GeneratedQuery, ValidationVerdict
from rentroll_nlq.services.ai_client import AIClient
from rentroll_nlq.services.cost_guard import CostGuard
from rentroll_nlq.services.executor import QueryExecutor
from rentroll_nlq.services.narrator import Narrator
from rentroll_nlq.services.pipeline import NLQueryPipeline
from rentroll_nlq.services.sql_validator import SQLValidator
from rentroll_nlq.services.translator import QueryTranslator
from rentroll_nlq.services.validator import QueryValidator
from rentroll_nlq.utils.exceptions import (
    CostEstimationError,
    CostExceeded,
    DataEngineError,
    ExecutionError,
    InvalidRequestError,
    NarrationError,
    PipelineError,
    RequestTimeoutError,
    TranslationError,
    ValidationRejected,
)


class TestNLQueryPipeline:
    """Pipeline test suite."""

    @pytest.fixture(autouse=True)
    def setup_stages(self, engine_factory, vacant_units_sql):
        """Set up stage stubs around a real cost guard and executor."""
        self.sql = vacant_units_sql
        self.engine_factory = engine_factory
        self.translator = AsyncMock(spec=QueryTranslator)
        self.translator.translate.return_value = GeneratedQuery(
            query_text=vacant_units_sql,
            explanation="Lists vacant units",
            estimated_complexity=Complexity.LOW
        )
        self.validator = AsyncMock(spec=QueryValidator)
        self.validator.validate.return_value = ValidationVerdict(is_valid=True)
        self.narrator = AsyncMock(spec=Narrator)
        self.narrator.narrate.return_value = "Two units are vacant at Maple Court."

    def build(self, engine=None, max_bytes=1_000_000, **kwargs) -> NLQueryPipeline:
        self.engine = engine or self.engine_factory()
        return NLQueryPipeline(
            translator=self.translator,
            validator=self.validator,
            cost_guard=CostGuard(self.engine, max_bytes=max_bytes),
            executor=QueryExecutor(self.engine, row_cap=100),
            narrator=self.narrator,
            **kwargs
        )

    # === Request validation ===

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["", "ab", "x" * 501])
    async def test_prompt_length_rejected_before_external_calls(self, prompt):
        """Test bad prompts never reach the model or the engine."""
        pipeline = self.build()

        with pytest.raises(InvalidRequestError) as exc_info:
            await pipeline.run_query(prompt)

        assert exc_info.value.details["errors"][0]["field"] == "prompt"
        self.translator.translate.assert_not_awaited()
        self.engine.estimate.assert_not_awaited()
        self.engine.execute.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["abc", "y" * 500])
    async def test_prompt_length_bounds_accepted(self, prompt):
        """Test prompts at the length bounds are processed."""
        pipeline = self.build()
        response = await pipeline.run_query(prompt)
        assert response.query_text == self.sql

    # === Happy path ===

    @pytest.mark.asyncio
    async def test_show_vacant_units(self):
        """Test a cheap, valid query runs to completion."""
        pipeline = self.build(self.engine_factory(bytes_projected=1024), max_bytes=1_000_000)

        response = await pipeline.run_query("show vacant units")

        self.engine.execute.assert_awaited_once()
        assert response.query_text == self.sql
        assert response.data[0]["Unit"] == "101"
        assert response.explanation == "Two units are vacant at Maple Court."
        assert response.bytes_processed == 2048
        assert response.execution_time_ms >= 0
        assert response.cached is False
        assert response.session_id == "anonymous"

    @pytest.mark.asyncio
    async def test_session_and_context_passed_through(self):
        """Test session id and context."""
        pipeline = self.build()

        response = await pipeline.run_query(
            "show vacant units", session_id="sess-42", context="Maple Court only"
        )

        assert response.session_id == "sess-42"
        self.translator.translate.assert_awaited_once_with("show vacant units", "Maple Court only")

    @pytest.mark.asyncio
    async def test_stage_order(self):
        """Test each stage sees the generated query."""
        pipeline = self.build()

        await pipeline.run_query("show vacant units")

        self.validator.validate.assert_awaited_once_with(self.sql)
        self.engine.estimate.assert_awaited_once()
        assert self.engine.estimate.await_args.args[0] == self.sql
        self.narrator.narrate.assert_awaited_once()
        assert self.narrator.narrate.await_args.args[:2] == ("show vacant units", self.sql)

    @pytest.mark.asyncio
    async def test_idempotent_shape(self):
        """Test the same prompt yields the same query and response shape."""
        pipeline = self.build()

        first = await pipeline.run_query("show vacant units")
        second = await pipeline.run_query("show vacant units")

        assert first.query_text == second.query_text
        assert [sorted(r) for r in first.data] == [sorted(r) for r in second.data]
        assert first.model_dump().keys() == second.model_dump().keys()

    # === Rejections ===

    @pytest.mark.asyncio
    async def test_validation_rejected(self):
        """Test an invalid verdict stops before estimation."""
        self.validator.validate.return_value = ValidationVerdict(
            is_valid=False,
            issues=["missing LIMIT clause"],
            suggestions=["add LIMIT 100"]
        )
        pipeline = self.build()

        with pytest.raises(ValidationRejected) as exc_info:
            await pipeline.run_query("show vacant units")

        assert exc_info.value.issues == ["missing LIMIT clause"]
        assert exc_info.value.suggestions == ["add LIMIT 100"]
        assert exc_info.value.sql == self.sql
        self.engine.estimate.assert_not_awaited()
        self.engine.execute.assert_not_awaited()
        self.narrator.narrate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_sql_is_rejected_not_failed(self):
        """Test an untokenizable query is a validation rejection."""
        self.translator.translate.return_value = GeneratedQuery(
            query_text="SELECT unit FROM units WHERE unit = 'abc LIMIT 5",
            explanation="broken literal"
        )
        self.validator = QueryValidator(SQLValidator())
        pipeline = self.build()

        with pytest.raises(ValidationRejected) as exc_info:
            await pipeline.run_query("show unit abc")

        assert exc_info.value.issues[0].startswith("SQL syntax error")
        assert exc_info.value.suggestions
        self.engine.estimate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cost_exceeded(self):
        """Test an expensive query is never executed."""
        pipeline = self.build(
            self.engine_factory(bytes_projected=2_000_000_000), max_bytes=500_000_000
        )

        with pytest.raises(CostExceeded) as exc_info:
            await pipeline.run_query("show every rent roll row ever")

        assert exc_info.value.projected == 2_000_000_000
        assert exc_info.value.max_bytes == 500_000_000
        self.engine.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_estimate_failure_is_execution_error(self):
        """Test a failed dry run stops the run."""
        engine = self.engine_factory()
        engine.estimate.side_effect = DataEngineError("dataset not found")
        pipeline = self.build(engine)

        with pytest.raises(CostEstimationError):
            await pipeline.run_query("show vacant units")
        engine.execute.assert_not_awaited()

    # === Failures ===

    @pytest.mark.asyncio
    async def test_translation_error(self):
        """Test a translation failure stops the run."""
        self.translator.translate.side_effect = TranslationError("no tool call")
        pipeline = self.build()

        with pytest.raises(TranslationError):
            await pipeline.run_query("show vacant units")
        self.validator.validate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_execution_error(self):
        """Test an engine failure surfaces as an execution error."""
        engine = self.engine_factory()
        engine.execute.side_effect = DataEngineError("quota exceeded")
        pipeline = self.build(engine)

        with pytest.raises(ExecutionError):
            await pipeline.run_query("show vacant units")
        self.narrator.narrate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self):
        """Test unknown errors become pipeline errors."""
        self.translator.translate.side_effect = RuntimeError("boom")
        pipeline = self.build()

        with pytest.raises(PipelineError):
            await pipeline.run_query("show vacant units")

    @pytest.mark.asyncio
    async def test_request_deadline(self):
        """Test the whole run is bounded."""
        async def slow_translate(*args, **kwargs):
            await asyncio.sleep(10)

        self.translator.translate.side_effect = slow_translate
        pipeline = self.build(request_timeout=0.05)

        with pytest.raises(RequestTimeoutError):
            await pipeline.run_query("show vacant units")
        self.engine.estimate.assert_not_awaited()

    # === Narration ===

    @pytest.mark.asyncio
    async def test_no_explanation_requested(self):
        """Test narration is skipped when not requested."""
        pipeline = self.build()

        response = await pipeline.run_query("show vacant units", include_explanation=False)

        self.narrator.narrate.assert_not_awaited()
        assert response.explanation is None
        assert len(response.data) == 2

    @pytest.mark.asyncio
    async def test_explanation_default_from_config(self):
        """Test the configured default applies when the caller is silent."""
        pipeline = self.build(include_explanation_default=False)

        response = await pipeline.run_query("show vacant units")

        self.narrator.narrate.assert_not_awaited()
        assert response.explanation is None

    @pytest.mark.asyncio
    async def test_empty_result_not_narrated(self):
        """Test narration is skipped for empty results."""
        pipeline = self.build(self.engine_factory(rows=[]))

        response = await pipeline.run_query("show vacant units")

        self.narrator.narrate.assert_not_awaited()
        assert response.data == []

    @pytest.mark.asyncio
    async def test_narration_failure_is_absorbed(self):
        """Test a failed narration leaves rows intact."""
        self.narrator.narrate.side_effect = NarrationError("model unavailable")
        pipeline = self.build()

        response = await pipeline.run_query("show vacant units")

        assert response.explanation is None
        assert len(response.data) == 2
        assert response.query_text == self.sql

    # === Wiring ===

    def test_from_settings(self, engine):
        """Test stages are built from settings."""
        settings = Settings(
            openai_api_key="test-key",
            data_engine="postgres",
            max_bytes=123,
            max_result_rows=7,
            request_timeout=60,
            include_explanation_default=False
        )

        pipeline = NLQueryPipeline.from_settings(settings, AsyncMock(spec=AIClient), engine)

        assert pipeline.cost_guard.max_bytes == 123
        assert pipeline.executor.row_cap == 7
        assert pipeline.validator.sql_validator.dialect == "postgres"
        assert pipeline.translator.dialect == "postgres"
        assert pipeline.request_timeout == 60
        assert pipeline.include_explanation_default is False
