"""Constants for rentroll-nlq."""

from enum import Enum


class ErrorCode(str, Enum):
    """Error code enumeration."""

    INVALID_REQUEST = "ERR_001"
    AI_SERVICE_ERROR = "ERR_002"
    TRANSLATION_FAILED = "ERR_003"
    VALIDATION_REJECTED = "ERR_004"
    COST_ESTIMATION_FAILED = "ERR_005"
    COST_EXCEEDED = "ERR_006"
    ENGINE_ERROR = "ERR_007"
    EXECUTION_FAILED = "ERR_008"
    QUERY_TIMEOUT = "ERR_009"
    NARRATION_FAILED = "ERR_010"
    REQUEST_TIMEOUT = "ERR_011"
    INTERNAL_ERROR = "ERR_012"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_REQUEST: "Request parameters are missing or malformed",
    ErrorCode.AI_SERVICE_ERROR: "Text generation service call failed",
    ErrorCode.TRANSLATION_FAILED: "Could not generate a query from the question",
    ErrorCode.VALIDATION_REJECTED: "Generated query failed validation",
    ErrorCode.COST_ESTIMATION_FAILED: "Could not estimate the cost of the query",
    ErrorCode.COST_EXCEEDED: "Query would process too much data",
    ErrorCode.ENGINE_ERROR: "Data engine call failed",
    ErrorCode.EXECUTION_FAILED: "Query execution failed",
    ErrorCode.QUERY_TIMEOUT: "Query timed out",
    ErrorCode.NARRATION_FAILED: "Could not generate an explanation",
    ErrorCode.REQUEST_TIMEOUT: "Request did not complete in time",
    ErrorCode.INTERNAL_ERROR: "Failed to process natural language query",
}

# 500 MiB
DEFAULT_MAX_BYTES = 500 * 1024 * 1024

DEFAULT_SESSION_ID = "anonymous"

PROMPT_MIN_LENGTH = 3
PROMPT_MAX_LENGTH = 500

COST_SUGGESTION = (
    "Please refine your query to be more specific, narrow the date range "
    "or add filters"
)
