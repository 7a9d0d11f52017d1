"""OpenAI chat helpers used by question generation."""

from __future__ import annotations

import os
from typing import Any, Optional

from dotenv import load_dotenv
from openai import OpenAI

from ..errors import GenerationError

__all__ = ["API_KEY_ENV", "chat_text", "load_client"]

API_KEY_ENV = "OPENAI_API_KEY"


def load_client(api_key: Optional[str] = None) -> Any:
    """Build an OpenAI client, reading the key from the env or ``.env``."""
    if api_key is None:
        load_dotenv()
        api_key = os.getenv(API_KEY_ENV)
    if not api_key:
        raise GenerationError(
            f"{API_KEY_ENV} not found in environment. Set it or add to .env"
        )
    return OpenAI(api_key=api_key)


def chat_text(
    client: Any,
    *,
    model: str,
    system: str,
    prompt: str,
    temperature: float,
    max_tokens: int,
) -> str:
    """Send one system+user exchange and return the stripped reply text.

    ``client`` is anything exposing ``chat.completions.create`` in the
    OpenAI SDK shape. An empty reply raises ``GenerationError``; transport
    errors propagate unchanged.
    """

    resp = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    content = (resp.choices[0].message.content or "").strip()
    if not content:
        raise GenerationError("The model returned an empty response.")
    return content
