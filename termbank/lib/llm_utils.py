"""
Shared LLM dispatch utility.

Provides a single call_llm_sync() function that handles provider-specific
branching (OpenAI, Anthropic, mock) so callers don't duplicate dispatch
logic.

The provider SDKs are synchronous.  Callers that need async should wrap
with ``asyncio.to_thread(call_llm_sync, ...)``.
"""

import json
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def call_llm_sync(
    ai_provider: Any,
    prompt: str,
    system_msg: str = "You are a controlled vocabulary expert. Respond with valid JSON only.",
    max_tokens: int = 200,
    temperature: float = 0.1,
    json_mode: bool = False,
) -> str:
    """
    Synchronous LLM call dispatching to OpenAI, Anthropic, or the mock provider.

    Args:
        ai_provider: AI provider instance with get_provider_name() and
            client/extraction_model (OpenAI/Anthropic) or complete() (mock).
        prompt: User prompt to send.
        system_msg: System message for context.
        max_tokens: Maximum response tokens.
        temperature: Sampling temperature.
        json_mode: Request structured JSON output (OpenAI response_format).
            Anthropic has no JSON mode; the system_msg requests JSON instead.

    Returns:
        Raw response text from the LLM, stripped of whitespace.

    Raises:
        ValueError: If provider type is unsupported.
    """
    provider_name = ai_provider.get_provider_name().lower()

    if provider_name == "openai":
        kwargs: dict = dict(
            model=ai_provider.extraction_model,
            messages=[
                {"role": "system", "content": system_msg},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = ai_provider.client.chat.completions.create(**kwargs)
        return response.choices[0].message.content.strip()

    elif provider_name == "anthropic":
        message = ai_provider.client.messages.create(
            model=ai_provider.extraction_model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_msg,
            messages=[{"role": "user", "content": prompt}],
        )
        return message.content[0].text.strip()

    elif provider_name == "mock":
        return ai_provider.complete(prompt, system_msg).strip()

    else:
        raise ValueError(f"Unsupported AI provider: {provider_name}")


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse the first {...} block of an LLM reply.

    Models sometimes wrap JSON in prose or markdown fences; anything
    unparseable returns None rather than raising.
    """
    if not text:
        return None
    match = _JSON_OBJECT.search(text)
    if not match:
        return None
    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.debug(f"Could not parse LLM JSON: {e.msg} in {text[:100]!r}")
        return None
    return value if isinstance(value, dict) else None
