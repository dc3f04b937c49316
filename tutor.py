"""
Tutor feedback collaborator.

Supplies greeting, hint and explanation text. Nothing here may block or
re-open the lesson state machine: every remote call goes through
`fetch_greeting` / `fetch_explanation`, which make one bounded attempt and
fall back to static text.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Dict, List, Optional, Protocol

from openai import AsyncOpenAI
from pydantic import BaseModel

from problems import Problem, SubKind

logger = logging.getLogger(__name__)

DEFAULT_GREETING = "Hi! Pick a lesson and let's explore fractions together."
PRAISE = (
    "Great job!",
    "Excellent!",
    "You got it!",
    "Wonderful thinking!",
    "Perfect!",
)
ENCOURAGEMENT = (
    "Not quite. Let's look again!",
    "Almost! Try once more.",
    "Good try! Check the picture again.",
    "Hmm, let's think it through together.",
)


class ExplainContext(BaseModel):
    problem: Problem
    outcome: bool
    submitted_fields: Dict[str, str] = {}


class HintPool:
    """Local, synchronous hint selection keyed only by correctness."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def pick(self, correct: bool) -> str:
        return self._rng.choice(PRAISE if correct else ENCOURAGEMENT)


class TutorFeedbackService(Protocol):
    name: str

    async def greeting(self) -> str: ...

    def hint(self, correct: bool) -> str: ...

    async def explain(self, context: ExplainContext) -> str: ...


def _static_explanation(context: ExplainContext) -> str:
    p = context.problem
    unit = "cm" if p.sub_kind is SubKind.LENGTH else ""
    whole = f"{p.total_items}{unit}" if unit else f"{p.total_items} {p.item_glyph}s"
    lead = "That's right!" if context.outcome else "Let's check it together."
    return (
        f"{lead} Split {whole} into {p.total_groups} equal parts: "
        f"each part is {p.group_size}{unit}. "
        f"{p.target_groups} of those parts make {p.target_items}{unit}, "
        f"so {p.target_groups}/{p.total_groups} of {whole} is {p.target_items}{unit}."
    )


class StaticTutor:
    """Offline tutor. Also the fallback text source for the remote one."""

    name = "static"

    def __init__(self, hints: Optional[HintPool] = None):
        self.hints = hints or HintPool()

    async def greeting(self) -> str:
        return DEFAULT_GREETING

    def hint(self, correct: bool) -> str:
        return self.hints.pick(correct)

    async def explain(self, context: ExplainContext) -> str:
        return _static_explanation(context)


_SYSTEM_PROMPT = (
    "You are a warm, patient elementary school math teacher helping a "
    "third-grader learn fractions of a whole. Answer in at most three short "
    "sentences, using simple words and no LaTeX."
)


class OpenAITutor:
    """Greeting and explanations from an OpenAI chat model."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 200,
        temperature: float = 0.7,
        hints: Optional[HintPool] = None,
    ):
        self._client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.hints = hints or HintPool()

    async def _complete(self, user_prompt: str) -> str:
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]
        start = time.perf_counter()
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        elapsed = int((time.perf_counter() - start) * 1000)
        text = (response.choices[0].message.content or "").strip()
        logger.info(f"Tutor LLM response: {elapsed}ms")
        if not text:
            raise ValueError("empty completion")
        return text

    async def greeting(self) -> str:
        return await self._complete(
            "Greet the student in one cheerful sentence and invite them to pick a fraction lesson."
        )

    def hint(self, correct: bool) -> str:
        return self.hints.pick(correct)

    async def explain(self, context: ExplainContext) -> str:
        p = context.problem
        answered = ", ".join(f"{k}={v}" for k, v in context.submitted_fields.items()) or "nothing"
        verdict = "correct" if context.outcome else "incorrect"
        return await self._complete(
            f"Problem: {p.describe()}. "
            f"The student answered {answered}, which is {verdict}. "
            "Explain the reasoning step by step: split the whole into equal groups, "
            "find one group, then count the groups the fraction asks for."
        )


def build_tutor(
    provider: str,
    api_key: str = "",
    model: str = "gpt-4o-mini",
    max_tokens: int = 200,
    temperature: float = 0.7,
    hints: Optional[HintPool] = None,
) -> TutorFeedbackService:
    hints = hints or HintPool()
    if provider == "openai":
        if api_key:
            return OpenAITutor(api_key, model, max_tokens, temperature, hints=hints)
        logger.warning("TUTOR_PROVIDER=openai but OPENAI_API_KEY is empty; using static tutor")
    elif provider != "static":
        logger.warning(f"Unknown TUTOR_PROVIDER {provider!r}; using static tutor")
    return StaticTutor(hints)


# --- Fallback policy ---------------------------------------------------------------
# One attempt, bounded by `timeout`, no retry.


async def fetch_greeting(tutor: TutorFeedbackService, timeout: float) -> str:
    try:
        text = await asyncio.wait_for(tutor.greeting(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Tutor greeting timed out after {timeout}s; using default")
        return DEFAULT_GREETING
    except Exception as e:
        logger.warning(f"Tutor greeting failed: {type(e).__name__}: {e}")
        return DEFAULT_GREETING
    return text or DEFAULT_GREETING


async def fetch_explanation(
    tutor: TutorFeedbackService, context: ExplainContext, fallback: str, timeout: float
) -> str:
    try:
        text = await asyncio.wait_for(tutor.explain(context), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Tutor explanation timed out after {timeout}s; keeping hint")
        return fallback
    except Exception as e:
        logger.warning(f"Tutor explanation failed: {type(e).__name__}: {e}")
        return fallback
    return text or fallback
