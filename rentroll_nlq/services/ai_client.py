"""AI client for structured and free-text completions."""
import json
import logging
import re

import openai
from openai import AsyncOpenAI
from typing import Any, Optional

from rentroll_nlq.utils.exceptions import AIServiceError

logger = logging.getLogger("ai-client")


class AIClient:
    """OpenAI client wrapper for rentroll-nlq.

    Every call is a single attempt with an explicit timeout. Failures of any
    kind surface as ``AIServiceError`` so the calling stage decides whether
    to propagate or absorb them.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: int = 30
    ):
        """Initialize the AI client.

        Args:
            api_key: OpenAI API key.
            model: Model name to use.
            base_url: Optional base URL for OpenAI-compatible APIs.
            timeout: Default request timeout in seconds.
        """
        logger.info("Initializing AIClient with model: %s, base_url: %s", model, base_url)

        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            max_retries=0
        )
        self.model = model
        self.timeout = timeout

    async def complete_function(
        self,
        prompt: str,
        function_schema: dict[str, Any],
        temperature: float,
        max_tokens: int,
        model: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> dict[str, Any]:
        """Force a call of ``function_schema`` and return its arguments.

        Args:
            prompt: The user message.
            function_schema: JSON schema of the function to call.
            temperature: Sampling temperature.
            max_tokens: Output length ceiling.
            model: Model override.
            timeout: Timeout override in seconds.

        Returns:
            The decoded function arguments.

        Raises:
            AIServiceError: If the call fails or returns no usable arguments.
        """
        name = function_schema["name"]
        response = await self._create(
            model=model or self.model,
            messages=[{"role": "user", "content": prompt}],
            tools=[{"type": "function", "function": function_schema}],
            tool_choice={"type": "function", "function": {"name": name}},
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout or self.timeout
        )

        message = response.choices[0].message if response.choices else None
        tool_calls = (message.tool_calls or []) if message else []
        if not tool_calls or not tool_calls[0].function.arguments:
            raise AIServiceError(f"No function call returned for {name}")

        try:
            arguments = json.loads(tool_calls[0].function.arguments)
        except json.JSONDecodeError as e:
            raise AIServiceError(f"Malformed function arguments for {name}: {e}") from e

        if not isinstance(arguments, dict):
            raise AIServiceError(f"Function arguments for {name} are not an object")
        return arguments

    async def complete_text(
        self,
        prompt: str,
        temperature: float,
        max_tokens: int,
        model: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> str:
        """Return a free-text completion with reasoning blocks removed.

        Raises:
            AIServiceError: If the call fails or returns no content.
        """
        response = await self._create(
            model=model or self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout or self.timeout
        )

        content = response.choices[0].message.content if response.choices else None
        text = self._strip_reasoning(content or "")
        if not text:
            raise AIServiceError("No content returned from the model")
        return text

    async def _create(self, **kwargs: Any) -> Any:
        try:
            return await self.client.chat.completions.create(**kwargs)
        except openai.APITimeoutError as e:
            logger.error("AI request timed out after %ss", kwargs.get("timeout"))
            raise AIServiceError(f"Request timed out after {kwargs.get('timeout')}s") from e
        except openai.OpenAIError as e:
            logger.error("AI request failed: %s", str(e))
            raise AIServiceError(f"Request failed: {e}") from e

    @staticmethod
    def _strip_reasoning(content: str) -> str:
        """Remove ``<think>`` sections some OpenAI-compatible models emit."""
        return re.sub(r"<think>.*?</think>", "", content, flags=re.DOTALL).strip()
