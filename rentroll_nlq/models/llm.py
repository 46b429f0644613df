"""Structured payloads returned by the text generation service.

Each model mirrors the JSON schema of the function the model is forced to
call, so a payload is validated at the boundary before it becomes a
domain object.
"""

from pydantic import BaseModel, ConfigDict, Field

from rentroll_nlq.models.query import (
    Complexity,
    GeneratedQuery,
    ValidationVerdict,
)


class SqlGenerationPayload(BaseModel):
    """Arguments of the ``generate_sql_query`` function."""

    model_config = ConfigDict(extra="ignore")

    sql: str = Field(..., min_length=1)
    explanation: str
    estimatedComplexity: Complexity

    def to_generated_query(self) -> GeneratedQuery:
        return GeneratedQuery(
            query_text=self.sql,
            explanation=self.explanation,
            estimated_complexity=self.estimatedComplexity
        )


class SqlReviewPayload(BaseModel):
    """Arguments of the ``review_sql_query`` function."""

    model_config = ConfigDict(extra="ignore")

    isValid: bool
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    def to_verdict(self) -> ValidationVerdict:
        return ValidationVerdict(
            is_valid=self.isValid,
            issues=self.issues,
            suggestions=self.suggestions
        )
