"""
LLM gateway client (OpenAI-compatible chat completions).

Features:
  - Reusable client (connection pooling)
  - Typed failures: 429 → RateLimitError, 413 → PayloadTooLargeError,
    402 → UsageLimitError,
    other non-2xx → GatewayError with the truncated body for the log
  - Vision helper for image_url parts (data: URIs supported)
  - Structured logging

No automatic retry. Whether to retry a rate-limited call is the caller's
decision.
"""

import logging
import time
from typing import Any, Optional

import httpx

from ..core.config import get_settings
from ..core.errors import GatewayError, PayloadTooLargeError, RateLimitError, UsageLimitError

logger = logging.getLogger(__name__)

# ── Reusable client (connection pool) ────────────────────────────────

_client: Optional[httpx.AsyncClient] = None


def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(connect=10, read=300, write=60, pool=10),
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
        )
    return _client


async def close_client():
    """Close the shared HTTP client. Call on app shutdown."""
    global _client
    if _client and not _client.is_closed:
        await _client.aclose()
        _client = None


# ── Error mapping ────────────────────────────────────────────────────

def _raise_for_status(resp: httpx.Response, model: str) -> None:
    if resp.is_success:
        return

    body = resp.text[:500]
    logger.error("LLM gateway error %d (model=%s): %s", resp.status_code, model, body)

    if resp.status_code == 429:
        raise RateLimitError(upstream_status=429, body=body)
    if resp.status_code == 413:
        raise PayloadTooLargeError(upstream_status=413, body=body)
    if resp.status_code == 402:
        raise UsageLimitError(upstream_status=402, body=body)
    raise GatewayError(upstream_status=resp.status_code, body=body)


# ── Main chat function ───────────────────────────────────────────────

async def chat(
    messages: list[dict],
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> dict:
    """
    Non-streaming chat completion. Returns the full API response as dict.
    """
    settings = get_settings()

    if not settings.llm_gateway_api_key:
        logger.error("LLM_GATEWAY_API_KEY is not configured")
        raise GatewayError()

    payload: dict[str, Any] = {
        "model": model or settings.default_llm_model,
        "messages": messages,
        "temperature": temperature if temperature is not None else settings.default_llm_temperature,
        "max_tokens": max_tokens or settings.default_llm_max_tokens,
    }

    url = f"{settings.llm_gateway_url.rstrip('/')}/chat/completions"
    headers = {
        "Authorization": f"Bearer {settings.llm_gateway_api_key}",
        "Content-Type": "application/json",
    }

    start = time.monotonic()
    client = _get_client()

    try:
        resp = await client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as e:
        logger.error("LLM gateway request failed after %.1fs: %s", time.monotonic() - start, e)
        raise GatewayError(body=str(e)) from e

    _raise_for_status(resp, payload["model"])

    try:
        data = resp.json()
    except ValueError as e:
        logger.error("LLM gateway returned non-JSON body: %s", resp.text[:500])
        raise GatewayError(upstream_status=resp.status_code, body=resp.text) from e

    elapsed = time.monotonic() - start
    usage = data.get("usage") or {}
    logger.info(
        "LLM chat: %dms | in=%d out=%d tokens | model=%s",
        int(elapsed * 1000),
        usage.get("prompt_tokens", 0),
        usage.get("completion_tokens", 0),
        payload["model"],
    )
    return data


def message_content(response: dict) -> str:
    """First choice's message text, or "" when the gateway returned none."""
    choices = response.get("choices") or [{}]
    message = choices[0].get("message") or {}
    return message.get("content") or ""


# ── Convenience functions ────────────────────────────────────────────

async def chat_with_vision(
    prompt: str,
    image_urls: list[str],
    system: str = "",
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: int = 2048,
) -> str:
    """Chat with image inputs (vision). Returns string response."""
    content: list[dict] = [{"type": "text", "text": prompt}]
    for url in image_urls:
        content.append({"type": "image_url", "image_url": {"url": url}})

    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": content})

    response = await chat(
        messages=messages, model=model,
        temperature=temperature, max_tokens=max_tokens,
    )
    return message_content(response)
