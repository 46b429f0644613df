"""Utility modules for rentroll-nlq."""

from rentroll_nlq.utils.constants import ErrorCode, ERROR_MESSAGES
from rentroll_nlq.utils.exceptions import (
    NLQueryError,
    InvalidRequestError,
    AIServiceError,
    DataEngineError,
    TranslationError,
    ValidationRejected,
    CostExceeded,
    ExecutionError,
    CostEstimationError,
    NarrationError,
    RequestTimeoutError,
    PipelineError,
)

__all__ = [
    "ErrorCode",
    "ERROR_MESSAGES",
    "NLQueryError",
    "InvalidRequestError",
    "AIServiceError",
    "DataEngineError",
    "TranslationError",
    "ValidationRejected",
    "CostExceeded",
    "ExecutionError",
    "CostEstimationError",
    "NarrationError",
    "RequestTimeoutError",
    "PipelineError",
]
