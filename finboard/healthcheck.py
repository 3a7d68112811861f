"""Provider health check — ping the completion provider before a board meeting."""

import asyncio
import logging

from finboard.providers.base import LLMProvider
from finboard.schemas import PingReply

logger = logging.getLogger(__name__)

_PING_SYSTEM = "You are a connectivity check."
_PING_PROMPT = 'Reply with {"reply": "OK"} only.'
_TIMEOUT_SEC = 15.0


async def _check_one(name: str, provider: LLMProvider) -> tuple[str, bool, str]:
    """Ping a single provider. Returns (name, ok, error_message)."""
    try:
        await asyncio.wait_for(
            provider.complete(_PING_SYSTEM, _PING_PROMPT, temperature=0.0, max_tokens=32, schema=PingReply),
            timeout=_TIMEOUT_SEC,
        )
        return name, True, ""
    except Exception as exc:
        logger.debug("Health check failed for %s: %s", name, exc)
        return name, False, str(exc) or type(exc).__name__


async def run_health_checks(
    providers: dict[str, LLMProvider],
) -> dict[str, tuple[bool, str]]:
    """Ping all providers in parallel.

    Returns:
        Dict mapping provider name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(n, p) for n, p in providers.items()))
    return {name: (ok, err) for name, ok, err in results}
