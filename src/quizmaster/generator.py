"""Ask a chat-completion model for questions in the parser's text format."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .core.ai import chat_text, load_client
from .errors import GenerationError

__all__ = [
    "DEFAULT_DIFFICULTY",
    "SYSTEM_PROMPT",
    "build_generation_prompt",
    "generate_question_text",
]

DEFAULT_DIFFICULTY = "medium"

SYSTEM_PROMPT = (
    "You write clear, accurate multiple-choice study questions and reply "
    "with plain text only."
)

_PROMPT_TEMPLATE = """Generate {count} multiple choice questions about "{topic}" at {difficulty} difficulty level.

Format each question EXACTLY like this:
Q1: [Question text here]
A. [Option 1]
B. [Option 2]
C. [Option 3]
*D. [Correct answer - mark with asterisk]

Q2: [Next question]
A. [Option 1]
*B. [Correct answer]
C. [Option 3]
D. [Option 4]

IMPORTANT RULES:
- Mark the correct answer with * before the letter
- Each question must have exactly 4 options (A, B, C, D)
- Separate questions with a blank line
- Make questions clear and educational
- Ensure correct answers are accurate"""


def build_generation_prompt(
    topic: str, count: int, difficulty: str = DEFAULT_DIFFICULTY
) -> str:
    topic = (topic or "").strip()
    if not topic:
        raise ValueError("topic must be a non-empty string")
    if count <= 0:
        raise ValueError("count must be positive")
    difficulty = (difficulty or "").strip() or DEFAULT_DIFFICULTY
    return _PROMPT_TEMPLATE.format(
        count=int(count), topic=topic, difficulty=difficulty
    )


def generate_question_text(
    topic: str,
    count: int,
    difficulty: str = DEFAULT_DIFFICULTY,
    *,
    client: Optional[Any] = None,
    model: str = "gpt-4o-mini",
    temperature: float = 0.2,
    max_tokens: int = 2000,
    logger: Optional[logging.Logger] = None,
) -> str:
    """Return the model's raw reply, ready for ``parse_questions``.

    ``client`` is any object exposing ``chat.completions.create`` in the
    OpenAI SDK shape; when omitted one is built from ``OPENAI_API_KEY``.
    Missing credentials, transport failures and empty replies raise
    ``GenerationError``.
    """

    log = logger or logging.getLogger(__name__)
    prompt = build_generation_prompt(topic, count, difficulty)
    if client is None:
        client = load_client()

    log.info(
        "Requesting generated questions",
        extra={"topic": topic, "count": count, "model": model},
    )
    try:
        return chat_text(
            client,
            model=model,
            system=SYSTEM_PROMPT,
            prompt=prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )
    except GenerationError:
        raise
    except Exception as exc:
        log.warning(
            "Question generation failed",
            extra={"topic": topic, "error": str(exc)},
        )
        raise GenerationError(f"Question generation failed: {exc}") from exc
