"""Best-effort narration of query results."""

import logging
from typing import Any

from rentroll_nlq.services.ai_client import AIClient
from rentroll_nlq.services.prompts import build_narrative_prompt
from rentroll_nlq.services.resilience import run_with_timeout
from rentroll_nlq.utils.exceptions import AIServiceError, NarrationError

logger = logging.getLogger("narrator")


class Narrator:
    """Summarizes executed results in business language."""

    def __init__(
        self,
        ai_client: AIClient,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        timeout: float = 30,
        max_rows: int = 50
    ):
        self.ai_client = ai_client
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_rows = max_rows

    async def narrate(
        self,
        prompt: str,
        query_text: str,
        rows: list[dict[str, Any]]
    ) -> str:
        """Return an explanation of ``rows`` for the question ``prompt``.

        Only the first ``max_rows`` rows are sent to the model.

        Raises:
            NarrationError: On any failure, including timeout.
        """
        sample = rows[:self.max_rows]
        try:
            return await run_with_timeout(
                self.ai_client.complete_text(
                    build_narrative_prompt(sample, prompt, query_text),
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    timeout=self.timeout
                ),
                self.timeout,
                lambda s: NarrationError(f"Narration timed out after {s}s")
            )
        except NarrationError:
            raise
        except AIServiceError as e:
            raise NarrationError(f"Failed to generate narrative: {e.message}") from e
        except Exception as e:
            logger.warning("Narration failed unexpectedly: %s", e)
            raise NarrationError(f"Failed to generate narrative: {e}") from e
