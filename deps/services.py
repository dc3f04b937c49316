import random
from functools import lru_cache

from config import (
    HINT_SEED,
    MAX_SESSIONS,
    OPENAI_API_KEY,
    PROBLEM_SEED,
    SESSION_IDLE_S,
    TUTOR_MAX_TOKENS,
    TUTOR_MODEL,
    TUTOR_PROVIDER,
    TUTOR_TEMPERATURE,
)
from registry import SessionRegistry
from tutor import HintPool, TutorFeedbackService, build_tutor


@lru_cache(maxsize=1)
def get_hints() -> HintPool:
    return HintPool(HINT_SEED)


@lru_cache(maxsize=1)
def get_tutor() -> TutorFeedbackService:
    """
    Process-wide tutor collaborator, chosen by TUTOR_PROVIDER.
    Tests swap it through app.dependency_overrides.
    """
    return build_tutor(
        TUTOR_PROVIDER,
        api_key=OPENAI_API_KEY,
        model=TUTOR_MODEL,
        max_tokens=TUTOR_MAX_TOKENS,
        temperature=TUTOR_TEMPERATURE,
        hints=get_hints(),
    )


@lru_cache(maxsize=1)
def get_registry() -> SessionRegistry:
    # in memory only; sessions never outlive the process
    return SessionRegistry(
        rng=random.Random(PROBLEM_SEED),
        hints=get_hints(),
        max_sessions=MAX_SESSIONS,
        idle_s=SESSION_IDLE_S,
    )
