"""Exception classes for rentroll-nlq."""

from rentroll_nlq.utils.constants import ErrorCode, ERROR_MESSAGES, COST_SUGGESTION


class NLQueryError(Exception):
    """Base exception class for rentroll-nlq."""

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        details: dict | None = None
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "Unknown error")
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert the exception to a dictionary format.

        Returns:
            A dictionary representation of the error.
        """
        return {
            "status": "error",
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details
            }
        }


class InvalidRequestError(NLQueryError):
    """The incoming request failed input validation."""

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(
            code=ErrorCode.INVALID_REQUEST,
            message=message,
            details={"errors": errors or []}
        )


class AIServiceError(NLQueryError):
    """Text generation service error."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.AI_SERVICE_ERROR,
            message=message
        )


class DataEngineError(NLQueryError):
    """Data engine transport or rejection error."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.ENGINE_ERROR,
            message=message
        )


class TranslationError(NLQueryError):
    """No usable query could be generated from the question."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.TRANSLATION_FAILED,
            message=f"Failed to generate SQL: {message}"
        )


class ValidationRejected(NLQueryError):
    """Generated query failed safety or quality checks."""

    def __init__(
        self,
        issues: list[str],
        suggestions: list[str] | None = None,
        sql: str | None = None
    ):
        self.issues = list(issues)
        self.suggestions = list(suggestions or [])
        self.sql = sql
        super().__init__(
            code=ErrorCode.VALIDATION_REJECTED,
            details={
                "issues": self.issues,
                "suggestions": self.suggestions,
                "sql": sql
            }
        )


class CostExceeded(NLQueryError):
    """Projected bytes are over the configured ceiling."""

    def __init__(self, projected: int, max_bytes: int, suggestion: str = COST_SUGGESTION):
        self.projected = projected
        self.max_bytes = max_bytes
        self.suggestion = suggestion
        super().__init__(
            code=ErrorCode.COST_EXCEEDED,
            message=(
                f"Query would process {projected} bytes, "
                f"exceeding limit of {max_bytes} bytes"
            ),
            details={
                "bytesProcessed": projected,
                "maxBytes": max_bytes,
                "suggestion": suggestion
            }
        )


class ExecutionError(NLQueryError):
    """Query execution error."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.EXECUTION_FAILED):
        super().__init__(code=code, message=message)


class CostEstimationError(ExecutionError):
    """The dry-run estimate could not be obtained."""

    def __init__(self, message: str):
        super().__init__(message, code=ErrorCode.COST_ESTIMATION_FAILED)


class NarrationError(NLQueryError):
    """Explanation generation error. Never leaves the pipeline."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.NARRATION_FAILED,
            message=message
        )


class RequestTimeoutError(NLQueryError):
    """The request-scoped deadline elapsed."""

    def __init__(self, seconds: float):
        super().__init__(
            code=ErrorCode.REQUEST_TIMEOUT,
            message=f"Request did not complete within {seconds}s",
            details={"timeoutSeconds": seconds}
        )


class PipelineError(NLQueryError):
    """Unexpected failure inside the pipeline."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.INTERNAL_ERROR,
            message=message
        )
