"""Tests for data models and error types."""

import pytest
from pydantic import ValidationError

from rentroll_nlq.models.llm import SqlGenerationPayload, SqlReviewPayload
from rentroll_nlq.models.outcome import OutcomeKind, StageOutcome
from rentroll_nlq.models.query import (
    Complexity,
    CostEstimate,
    ExecutionResult,
    GeneratedQuery,
    QueryRequest,
    QueryResponse,
    ValidationVerdict,
)
from rentroll_nlq.utils.exceptions import (
    CostEstimationError,
    CostExceeded,
    ExecutionError,
    NarrationError,
    ValidationRejected,
)


class TestQueryModels:
    """Query model tests."""

    def test_query_request_defaults(self):
        """Test QueryRequest default values."""
        req = QueryRequest(prompt="show vacant units")
        assert req.session_id is None
        assert req.include_explanation is True
        assert req.context is None

    @pytest.mark.parametrize("prompt", ["", "ab", "x" * 501])
    def test_query_request_prompt_length(self, prompt):
        """Test prompt length bounds."""
        with pytest.raises(ValidationError):
            QueryRequest(prompt=prompt)

    def test_query_request_bounds_inclusive(self):
        """Test prompts of exactly 3 and 500 characters."""
        assert QueryRequest(prompt="abc").prompt == "abc"
        assert len(QueryRequest(prompt="y" * 500).prompt) == 500

    def test_query_request_immutable(self):
        """Test that requests cannot be mutated."""
        req = QueryRequest(prompt="show vacant units")
        with pytest.raises(ValidationError):
            req.prompt = "something else"

    def test_query_request_accepts_camel_case(self):
        """Test camelCase wire keys."""
        req = QueryRequest.model_validate({
            "prompt": "show vacant units",
            "sessionId": "abc",
            "includeExplanation": False
        })
        assert req.session_id == "abc"
        assert req.include_explanation is False

    def test_generated_query_strips_text(self):
        """Test that query text is stripped."""
        query = GeneratedQuery(query_text="  SELECT 1  ", explanation="one")
        assert query.query_text == "SELECT 1"
        assert query.estimated_complexity == Complexity.MEDIUM

    def test_generated_query_requires_text(self):
        """Test that an empty query is refused."""
        with pytest.raises(ValidationError):
            GeneratedQuery(query_text="   ", explanation="nothing")

    def test_cost_estimate_non_negative(self):
        """Test that projected bytes cannot be negative."""
        with pytest.raises(ValidationError):
            CostEstimate(bytes_projected=-1)

    def test_execution_result_defaults(self):
        """Test ExecutionResult defaults."""
        result = ExecutionResult()
        assert result.rows == []
        assert result.bytes_processed == 0
        assert result.elapsed_ms == 0

    def test_validation_verdict(self):
        """Test ValidationVerdict fields."""
        verdict = ValidationVerdict(is_valid=False, issues=["missing LIMIT clause"])
        assert verdict.suggestions == []
        assert verdict.issues == ["missing LIMIT clause"]

    def test_query_response_defaults(self):
        """Test QueryResponse defaults."""
        resp = QueryResponse(query_text="SELECT 1")
        assert resp.cached is False
        assert resp.session_id == "anonymous"
        assert resp.explanation is None

    def test_query_response_wire_format(self):
        """Test camelCase serialization."""
        resp = QueryResponse(
            data=[{"Unit": "101"}],
            query_text="SELECT Unit FROM units LIMIT 1",
            execution_time_ms=42,
            bytes_processed=1024,
            session_id="s1"
        )
        dumped = resp.model_dump(by_alias=True)
        assert dumped["sql"] == "SELECT Unit FROM units LIMIT 1"
        assert dumped["executionTimeMs"] == 42
        assert dumped["bytesProcessed"] == 1024
        assert dumped["sessionId"] == "s1"
        assert dumped["cached"] is False


class TestPayloads:
    """Structured model output tests."""

    def test_sql_generation_payload(self):
        """Test mapping a generation payload to a query."""
        payload = SqlGenerationPayload.model_validate({
            "sql": "SELECT 1",
            "explanation": "constant",
            "estimatedComplexity": "low"
        })
        query = payload.to_generated_query()
        assert query.query_text == "SELECT 1"
        assert query.estimated_complexity == Complexity.LOW

    def test_sql_generation_payload_rejects_bad_complexity(self):
        """Test unknown complexity labels."""
        with pytest.raises(ValidationError):
            SqlGenerationPayload.model_validate({
                "sql": "SELECT 1",
                "explanation": "constant",
                "estimatedComplexity": "extreme"
            })

    def test_sql_review_payload(self):
        """Test mapping a review payload to a verdict."""
        verdict = SqlReviewPayload.model_validate({
            "isValid": False,
            "issues": ["missing LIMIT clause"],
            "suggestions": ["add LIMIT 100"]
        }).to_verdict()
        assert verdict.is_valid is False
        assert verdict.issues == ["missing LIMIT clause"]
        assert verdict.suggestions == ["add LIMIT 100"]


class TestStageOutcome:
    """Stage outcome tests."""

    def test_ok(self):
        outcome = StageOutcome.ok(5)
        assert outcome.kind is OutcomeKind.OK
        assert outcome.value == 5
        assert outcome.error is None

    def test_recoverable(self):
        error = NarrationError("model down")
        outcome = StageOutcome.recoverable(None, error)
        assert outcome.kind is OutcomeKind.RECOVERABLE
        assert outcome.value is None
        assert outcome.error is error

    def test_fatal(self):
        error = ExecutionError("boom")
        outcome = StageOutcome.fatal(error)
        assert outcome.kind is OutcomeKind.FATAL
        assert outcome.error is error


class TestErrors:
    """Error type tests."""

    def test_validation_rejected_to_dict(self):
        """Test that issues and suggestions reach the caller."""
        error = ValidationRejected(["missing LIMIT clause"], ["add LIMIT 100"], sql="SELECT *")
        body = error.to_dict()
        assert body["status"] == "error"
        assert body["error"]["code"] == "ERR_004"
        assert body["error"]["details"]["issues"] == ["missing LIMIT clause"]
        assert body["error"]["details"]["suggestions"] == ["add LIMIT 100"]

    def test_cost_exceeded_details(self):
        """Test projected and ceiling values."""
        error = CostExceeded(2_000_000_000, 500_000_000)
        assert error.projected == 2_000_000_000
        assert error.max_bytes == 500_000_000
        details = error.to_dict()["error"]["details"]
        assert details["bytesProcessed"] == 2_000_000_000
        assert details["maxBytes"] == 500_000_000
        assert "filters" in details["suggestion"]

    def test_cost_estimation_error_is_execution_error(self):
        """Test estimation failures belong to the execution family."""
        error = CostEstimationError("dry run failed")
        assert isinstance(error, ExecutionError)
        assert error.code.value == "ERR_005"

    def test_public_shape_has_no_stage_names(self):
        """Test that error payloads carry no pipeline state names."""
        body = str(ExecutionError("engine unavailable").to_dict())
        for state in ("translating", "validating", "estimating_cost", "executing", "narrating"):
            assert state not in body
