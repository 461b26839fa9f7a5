"""
AI chat-completion gateway helpers.

The gateway speaks the OpenAI-compatible API:
- POST /v1/chat/completions -> {"choices": [{"message": {"content": "..."}}]}
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import httpx

from core import config
from core.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev"
DEFAULT_MODEL = "google/gemini-2.5-flash"

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_BARE_OBJECT = re.compile(r"\{[\s\S]*\}")


def gateway_url() -> str:
    return config.env_str("AI_GATEWAY_URL", DEFAULT_GATEWAY_URL).rstrip("/")


def gateway_api_key() -> str:
    key = config.env_str("AI_GATEWAY_API_KEY")
    if not key:
        raise ConfigurationError("AI gateway is not configured.")
    return key


def default_model() -> str:
    return config.env_str("AI_MODEL", DEFAULT_MODEL)


async def chat_completion(
    messages: list[dict[str, str]],
    *,
    model: str | None = None,
    temperature: float | None = None,
    max_output_tokens: int | None = None,
    timeout_s: float = 60.0,
) -> str:
    """
    Generate one assistant message from a message list.
    """
    if not messages:
        raise UpstreamError("ai", "Messages list is empty.")

    payload: dict[str, Any] = {"model": model or default_model(), "messages": messages}
    if temperature is not None:
        payload["temperature"] = float(temperature)
    if max_output_tokens is not None:
        payload["max_tokens"] = int(max_output_tokens)

    headers = {"Authorization": f"Bearer {gateway_api_key()}"}
    async with httpx.AsyncClient(base_url=gateway_url(), timeout=timeout_s) as client:
        resp = await client.post("/v1/chat/completions", json=payload, headers=headers)

    if resp.status_code == 429:
        raise UpstreamError("ai", "Rate limit exceeded. Please try again later.", status_code=429)
    if resp.status_code == 402:
        raise UpstreamError("ai", "AI credits exhausted. Please add credits.", status_code=402)
    if resp.status_code != 200:
        # Avoid dumping huge bodies; include a small snippet.
        body = resp.text[:500]
        raise UpstreamError("ai", f"AI gateway error: {resp.status_code} {body}", status_code=resp.status_code)

    data: dict[str, Any] = resp.json()
    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        message = (choices[0] or {}).get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str) and content.strip():
                return content.strip()

    raise UpstreamError("ai", "No content returned from AI.")


async def chat_text(system_prompt: str, user_prompt: str, **kwargs: Any) -> str:
    return await chat_completion(
        [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        **kwargs,
    )


def extract_json(text: str) -> Any:
    """
    Parse a JSON document out of model output.

    Accepts plain JSON, JSON in a ```json fenced block, or a JSON object
    embedded in prose. Raises ValueError when nothing parses.
    """
    raw = (text or "").strip()
    if not raw:
        raise ValueError("Empty model output.")

    candidates = [raw]
    fenced = _FENCED_JSON.search(raw)
    if fenced:
        candidates.insert(0, fenced.group(1).strip())
    bare = _BARE_OBJECT.search(raw)
    if bare:
        candidates.append(bare.group(0))

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    raise ValueError("Model output is not valid JSON.")
