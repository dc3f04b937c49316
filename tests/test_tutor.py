import asyncio

from helpers import BrokenTutor, EchoTutor
from problems import LessonKind, Problem, SubKind
from tutor import (
    DEFAULT_GREETING,
    ENCOURAGEMENT,
    PRAISE,
    ExplainContext,
    HintPool,
    OpenAITutor,
    StaticTutor,
    build_tutor,
    fetch_explanation,
    fetch_greeting,
)


class SlowTutor(EchoTutor):
    async def greeting(self) -> str:
        await asyncio.sleep(1)
        return "too late"

    async def explain(self, context: ExplainContext) -> str:
        await asyncio.sleep(1)
        return "too late"


def _context(outcome=True):
    return ExplainContext(
        problem=Problem.build(LessonKind.VALUE_FINDING, 4, 3, 2),
        outcome=outcome,
        submitted_fields={"value": "8"},
    )


def test_hint_pool_is_keyed_by_correctness():
    pool = HintPool(3)
    for _ in range(20):
        assert pool.pick(True) in PRAISE
        assert pool.pick(False) in ENCOURAGEMENT


def test_hint_pool_is_deterministic_with_seed():
    a, b = HintPool(42), HintPool(42)
    seq_a = [a.pick(i % 2 == 0) for i in range(10)]
    seq_b = [b.pick(i % 2 == 0) for i in range(10)]
    assert seq_a == seq_b


def test_static_tutor_explains_the_problem():
    text = asyncio.run(StaticTutor().explain(_context()))
    assert text.startswith("That's right!")
    assert "3 equal parts" in text and "2/3 of 12 oranges is 8" in text


def test_static_tutor_explains_length_in_cm():
    ctx = ExplainContext(
        problem=Problem.build(LessonKind.VALUE_FINDING, 2, 4, 3, sub_kind=SubKind.LENGTH),
        outcome=False,
    )
    text = asyncio.run(StaticTutor().explain(ctx))
    assert text.startswith("Let's check it together.")
    assert "3/4 of 8cm is 6cm" in text


def test_fetch_greeting_falls_back_on_failure():
    assert asyncio.run(fetch_greeting(BrokenTutor(), timeout=1)) == DEFAULT_GREETING


def test_fetch_greeting_falls_back_on_timeout():
    assert asyncio.run(fetch_greeting(SlowTutor(), timeout=0.01)) == DEFAULT_GREETING


def test_fetch_greeting_passes_through():
    assert asyncio.run(fetch_greeting(EchoTutor(), timeout=1)) == "hello from echo"


def test_fetch_explanation_keeps_hint_on_failure():
    text = asyncio.run(fetch_explanation(BrokenTutor(), _context(), "Great job!", timeout=1))
    assert text == "Great job!"


def test_fetch_explanation_keeps_hint_on_timeout():
    text = asyncio.run(fetch_explanation(SlowTutor(), _context(), "Great job!", timeout=0.01))
    assert text == "Great job!"


def test_build_tutor_defaults_to_static():
    assert isinstance(build_tutor("static"), StaticTutor)
    assert isinstance(build_tutor("openai", api_key=""), StaticTutor)
    assert isinstance(build_tutor("nonsense"), StaticTutor)


def test_build_tutor_openai_with_key():
    tutor = build_tutor("openai", api_key="sk-test", model="gpt-4o-mini")
    assert isinstance(tutor, OpenAITutor)
    assert tutor.model == "gpt-4o-mini"
    assert tutor.hint(True) in PRAISE
