"""Data models for rentroll-nlq."""

from rentroll_nlq.models.query import (
    Complexity,
    QueryRequest,
    GeneratedQuery,
    ValidationVerdict,
    CostEstimate,
    ExecutionResult,
    QueryResponse,
)
from rentroll_nlq.models.llm import (
    SqlGenerationPayload,
    SqlReviewPayload,
)
from rentroll_nlq.models.schema import (
    ColumnInfo,
    TableSchema,
)
from rentroll_nlq.models.outcome import (
    OutcomeKind,
    StageOutcome,
)

__all__ = [
    "Complexity",
    "QueryRequest",
    "GeneratedQuery",
    "ValidationVerdict",
    "CostEstimate",
    "ExecutionResult",
    "QueryResponse",
    "SqlGenerationPayload",
    "SqlReviewPayload",
    "ColumnInfo",
    "TableSchema",
    "OutcomeKind",
    "StageOutcome",
]
