"""Timeout helpers for external calls.

The pipeline never retries; every external call gets exactly one attempt
bounded by a timeout, and expiry is turned into the calling stage's error.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from rentroll_nlq.utils.exceptions import NLQueryError

logger = logging.getLogger("resilience")

T = TypeVar('T')


async def run_with_timeout(
    awaitable: Awaitable[T],
    seconds: float,
    on_timeout: Callable[[float], NLQueryError]
) -> T:
    """Await ``awaitable`` for at most ``seconds``.

    Args:
        awaitable: The external call.
        seconds: Timeout in seconds.
        on_timeout: Builds the error raised when the timeout expires.

    Returns:
        The awaitable's result.

    Raises:
        NLQueryError: Whatever ``on_timeout`` builds, on expiry.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as e:
        logger.warning("External call timed out after %ss", seconds)
        raise on_timeout(seconds) from e
