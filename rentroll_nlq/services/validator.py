"""Query validation stage: static checks plus optional model review."""

import logging
from typing import Literal, Optional

from pydantic import ValidationError

from rentroll_nlq.models.llm import SqlReviewPayload
from rentroll_nlq.models.query import ValidationVerdict
from rentroll_nlq.services.ai_client import AIClient
from rentroll_nlq.services.prompts import REVIEW_FUNCTION_SCHEMA, build_validation_prompt
from rentroll_nlq.services.sql_validator import SQLValidator
from rentroll_nlq.utils.exceptions import AIServiceError

logger = logging.getLogger("validator")


class QueryValidator:
    """Produces a verdict for a candidate query.

    In ``heuristic`` mode only the static validator runs. In ``llm`` mode a
    query that passes the static checks is also reviewed by the model, and
    an unreachable or malformed review rejects the query.
    """

    def __init__(
        self,
        sql_validator: SQLValidator,
        ai_client: Optional[AIClient] = None,
        mode: Literal["heuristic", "llm"] = "heuristic",
        model: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 500,
        timeout: Optional[float] = None
    ):
        if mode == "llm" and ai_client is None:
            raise ValueError("llm validation mode requires an AI client")

        self.sql_validator = sql_validator
        self.ai_client = ai_client
        self.mode = mode
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    async def validate(self, query_text: str) -> ValidationVerdict:
        """Validate ``query_text``; never raises for an unverifiable query."""
        verdict = self.sql_validator.validate(query_text)
        if not verdict.is_valid:
            logger.info("Static validation rejected query: %s", verdict.issues)
            return verdict

        if self.mode == "heuristic":
            return verdict

        review = await self._review(query_text)
        return ValidationVerdict(
            is_valid=review.is_valid,
            issues=verdict.issues + review.issues,
            suggestions=verdict.suggestions + review.suggestions
        )

    async def _review(self, query_text: str) -> ValidationVerdict:
        try:
            arguments = await self.ai_client.complete_function(
                build_validation_prompt(query_text, self.sql_validator.dialect),
                REVIEW_FUNCTION_SCHEMA,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                model=self.model,
                timeout=self.timeout
            )
            review = SqlReviewPayload.model_validate(arguments).to_verdict()
        except AIServiceError as e:
            logger.warning("SQL review call failed: %s", e.message)
            return ValidationVerdict(
                is_valid=False,
                issues=[f"Failed to validate SQL query: {e.message}"]
            )
        except ValidationError as e:
            logger.warning("Malformed SQL review payload: %s", e)
            return ValidationVerdict(
                is_valid=False,
                issues=["Failed to validate SQL query: malformed review output"]
            )

        if not review.is_valid and not review.issues:
            review = ValidationVerdict(
                is_valid=False,
                issues=["Query was rejected by review without a stated reason"],
                suggestions=review.suggestions
            )
        return review
