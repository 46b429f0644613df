"""Query pipeline data models."""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, Any

from rentroll_nlq.utils.constants import (
    DEFAULT_SESSION_ID,
    PROMPT_MIN_LENGTH,
    PROMPT_MAX_LENGTH,
)


_MODEL_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class Complexity(str, Enum):
    """Coarse complexity label attached to a generated query."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QueryRequest(BaseModel):
    """Natural language query request."""

    model_config = _MODEL_CONFIG

    prompt: str = Field(
        ...,
        min_length=PROMPT_MIN_LENGTH,
        max_length=PROMPT_MAX_LENGTH,
        description="Natural language question"
    )
    session_id: Optional[str] = Field(None, description="Caller session id")
    include_explanation: bool = Field(
        default=True,
        description="Whether to narrate the result rows"
    )
    context: Optional[str] = Field(None, description="Prior conversation context")


class GeneratedQuery(BaseModel):
    """Candidate query produced by the translator."""

    model_config = _MODEL_CONFIG

    query_text: str = Field(..., alias="sql")
    explanation: str = ""
    estimated_complexity: Complexity = Complexity.MEDIUM

    @field_validator("query_text")
    @classmethod
    def _require_query_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("query text must not be empty")
        return value


class ValidationVerdict(BaseModel):
    """Outcome of validating a candidate query."""

    model_config = _MODEL_CONFIG

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class CostEstimate(BaseModel):
    """Projected bytes scanned, as reported by a dry run."""

    model_config = _MODEL_CONFIG

    bytes_projected: int = Field(..., ge=0)


class ExecutionResult(BaseModel):
    """Rows and accounting returned by the data engine."""

    model_config = _MODEL_CONFIG

    rows: list[dict[str, Any]] = Field(default_factory=list)
    bytes_processed: int = Field(0, ge=0)
    elapsed_ms: int = Field(0, ge=0)


class QueryResponse(BaseModel):
    """Terminal response of a natural language query."""

    model_config = _MODEL_CONFIG

    data: list[dict[str, Any]] = Field(default_factory=list)
    query_text: str = Field(..., alias="sql")
    explanation: Optional[str] = None
    execution_time_ms: int = Field(0, ge=0)
    bytes_processed: int = Field(0, ge=0)
    cached: bool = False
    session_id: str = DEFAULT_SESSION_ID
