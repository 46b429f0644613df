"""Natural language to SQL translation."""

import logging
from typing import Optional

from pydantic import ValidationError

from rentroll_nlq.models.llm import SqlGenerationPayload
from rentroll_nlq.models.query import GeneratedQuery
from rentroll_nlq.services.ai_client import AIClient
from rentroll_nlq.services.prompts import SQL_FUNCTION_SCHEMA, build_sql_prompt
from rentroll_nlq.utils.exceptions import AIServiceError, TranslationError

logger = logging.getLogger("translator")


class QueryTranslator:
    """Turns a question into a candidate query with one forced function call."""

    def __init__(
        self,
        ai_client: AIClient,
        table: str,
        dialect: str = "bigquery",
        temperature: float = 0.1,
        max_tokens: int = 1000,
        timeout: Optional[float] = None
    ):
        """Initialize the translator.

        Args:
            ai_client: Text generation client.
            table: Fully qualified table the model must query.
            dialect: SQL dialect named in the prompt.
            temperature: Sampling temperature, kept low for stable SQL.
            max_tokens: Output length ceiling.
            timeout: Call timeout in seconds, client default if None.
        """
        self.ai_client = ai_client
        self.table = table
        self.dialect = dialect
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    async def translate(self, prompt: str, context: Optional[str] = None) -> GeneratedQuery:
        """Generate a candidate query for ``prompt``.

        Args:
            prompt: The user's question.
            context: Optional prior conversation context.

        Returns:
            The validated candidate query.

        Raises:
            TranslationError: If no usable structured output was returned.
        """
        logger.info("Generating SQL for user question: %s", prompt)

        try:
            arguments = await self.ai_client.complete_function(
                build_sql_prompt(prompt, self.table, self.dialect, context),
                SQL_FUNCTION_SCHEMA,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout
            )
        except AIServiceError as e:
            raise TranslationError(e.message) from e

        try:
            payload = SqlGenerationPayload.model_validate(arguments)
            generated = payload.to_generated_query()
        except ValidationError as e:
            logger.warning("Malformed SQL generation payload: %s", e)
            raise TranslationError(f"malformed model output ({e.error_count()} errors)") from e

        logger.info(
            "Generated SQL (complexity=%s): %s",
            generated.estimated_complexity.value, generated.query_text
        )
        return generated
