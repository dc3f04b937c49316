import asyncio

import pytest

from helpers import EchoTutor, ScriptedRandom
from lesson import Phase
from problems import LessonKind
from registry import SessionNotFound, SessionRegistry
from tutor import ExplainContext, HintPool


class GatedTutor(EchoTutor):
    """Explanation waits until the test opens the gate."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def explain(self, context: ExplainContext) -> str:
        await self.gate.wait()
        return "late explanation"


def _registry(**kw):
    return SessionRegistry(rng=ScriptedRandom(4, 3, 2, **kw), hints=HintPool(0))


def _resolved(registry):
    s = registry.open(LessonKind.VALUE_FINDING)
    s.submit_unit_value("4")
    s.submit_value("8")
    return s


def _context(session):
    return ExplainContext(
        problem=session.problem, outcome=session.outcome, submitted_fields=session.submitted_fields
    )


def test_open_and_get():
    registry = _registry()
    s = registry.open(LessonKind.NAMING)
    assert registry.get(s.id) is s
    assert len(registry) == 1
    assert s.phase is Phase.GROUPING


def test_get_unknown_session():
    with pytest.raises(SessionNotFound):
        _registry().get("nope")


def test_advance_replaces_session_whole():
    registry = _registry()
    old = _resolved(registry)
    fresh = registry.advance(old.id)
    assert fresh.id != old.id
    assert fresh.phase is Phase.UNIT_VALUE
    assert fresh.outcome is None and fresh.pending_inputs == {}
    assert fresh.problem.lesson_kind is LessonKind.VALUE_FINDING
    with pytest.raises(SessionNotFound):
        registry.get(old.id)
    assert len(registry) == 1


def test_advance_ignores_previous_outcome():
    registry = _registry()
    s = registry.open(LessonKind.NAMING)
    s.submit_groups("3")
    s.submit_fraction("1", "3")
    assert s.outcome is False
    fresh = registry.advance(s.id)
    assert fresh.phase is Phase.GROUPING
    assert fresh.outcome is None


def test_close_unknown_session():
    with pytest.raises(SessionNotFound):
        _registry().close("nope")


def test_explanation_applied_to_current_session():
    registry = _registry()
    s = _resolved(registry)
    tutor = EchoTutor()
    applied = asyncio.run(
        registry.run_explanation(tutor, s.id, s.explanation_ticket, _context(s), "hint", 1)
    )
    assert applied is True
    assert s.tutor_message == "explained 2/3"
    assert tutor.explained[0].submitted_fields == {"value": "8"}


def test_stale_ticket_is_discarded():
    registry = _registry()
    s = registry.open(LessonKind.VALUE_FINDING)
    s.submit_unit_value("4")
    s.submit_value("7")
    stale = s.explanation_ticket
    s.submit_value("8")
    assert registry.apply_explanation(s.id, stale, "old news") is False
    assert s.tutor_message != "old news"
    assert registry.apply_explanation(s.id, s.explanation_ticket, "fresh") is True
    assert s.tutor_message == "fresh"


def test_late_explanation_is_discarded_after_next_problem():
    async def scenario():
        registry = _registry()
        old = _resolved(registry)
        tutor = GatedTutor()
        job = asyncio.create_task(
            registry.run_explanation(tutor, old.id, old.explanation_ticket, _context(old), "hint", 5)
        )
        await asyncio.sleep(0)
        assert registry.is_explaining(old.id)

        fresh = registry.advance(old.id)
        tutor.gate.set()
        applied = await job
        return old, fresh, applied

    old, fresh, applied = asyncio.run(scenario())
    assert applied is False
    assert old.tutor_message != "late explanation"
    assert fresh.tutor_message != "late explanation"


def test_explanation_for_closed_session_is_not_started():
    registry = _registry()
    s = _resolved(registry)
    registry.close(s.id)
    tutor = EchoTutor()
    applied = asyncio.run(
        registry.run_explanation(tutor, s.id, s.explanation_ticket, _context(s), "hint", 1)
    )
    assert applied is False
    assert tutor.explained == []


def test_cancelling_the_runner_is_not_swallowed():
    async def scenario():
        registry = _registry()
        s = _resolved(registry)
        tutor = GatedTutor()
        job = asyncio.create_task(
            registry.run_explanation(tutor, s.id, s.explanation_ticket, _context(s), "hint", 5)
        )
        await asyncio.sleep(0)
        job.cancel()
        with pytest.raises(asyncio.CancelledError):
            await job
        return registry, s

    registry, s = asyncio.run(scenario())
    assert not registry.is_explaining(s.id)
    assert s.tutor_message != "late explanation"


def test_malformed_resubmission_discards_earlier_explanation():
    registry = _registry()
    s = registry.open(LessonKind.VALUE_FINDING)
    s.submit_unit_value("4")
    wrong = s.submit_value("7")
    inline = s.submit_value("").message
    assert registry.apply_explanation(s.id, wrong.ticket, "you typed 7") is False
    assert s.tutor_message == inline


# --- lifecycle ---------------------------------------------------------------------


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_open_replaces_previous_session():
    registry = _registry()
    old = registry.open(LessonKind.NAMING)
    fresh = registry.open(LessonKind.VALUE_FINDING, replaces=old.id)
    assert old.id not in registry
    assert fresh.id in registry
    assert len(registry) == 1


def test_open_replacing_a_gone_session_still_opens():
    registry = _registry()
    s = registry.open(LessonKind.NAMING, replaces="nope")
    assert registry.get(s.id) is s


def test_idle_sessions_expire():
    clock = FakeClock()
    registry = SessionRegistry(
        rng=ScriptedRandom(4, 3, 2), hints=HintPool(0), idle_s=60, clock=clock
    )
    stale = registry.open(LessonKind.NAMING)
    clock.now = 30
    kept = registry.open(LessonKind.NAMING)
    clock.now = 61
    fresh = registry.open(LessonKind.NAMING)
    assert stale.id not in registry
    assert kept.id in registry and fresh.id in registry


def test_least_recently_used_session_is_evicted_at_capacity():
    clock = FakeClock()
    registry = SessionRegistry(
        rng=ScriptedRandom(4, 3, 2), hints=HintPool(0), max_sessions=2, idle_s=None, clock=clock
    )
    a = registry.open(LessonKind.NAMING)
    clock.now = 1
    b = registry.open(LessonKind.NAMING)
    clock.now = 2
    registry.get(a.id)
    clock.now = 3
    c = registry.open(LessonKind.NAMING)
    assert len(registry) == 2
    assert b.id not in registry
    assert a.id in registry and c.id in registry


def test_eviction_cancels_pending_explanation():
    async def scenario():
        registry = SessionRegistry(
            rng=ScriptedRandom(4, 3, 2), hints=HintPool(0), max_sessions=1, idle_s=None
        )
        old = _resolved(registry)
        tutor = GatedTutor()
        job = asyncio.create_task(
            registry.run_explanation(tutor, old.id, old.explanation_ticket, _context(old), "hint", 5)
        )
        await asyncio.sleep(0)
        registry.open(LessonKind.NAMING)
        applied = await job
        return old, applied

    old, applied = asyncio.run(scenario())
    assert applied is False
    assert old.tutor_message != "late explanation"
