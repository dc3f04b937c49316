from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from deps.services import get_registry
from lesson import LessonSession, Phase
from presentation import derive_view
from problems import LessonKind, SubKind
from registry import SessionNotFound, SessionRegistry
from schemas.lessons import LessonOut, ProblemOut, SessionOut, StartLessonRequest, ViewOut

router = APIRouter(tags=["lessons"])

LESSONS = [
    LessonOut(
        lesson_kind=LessonKind.NAMING,
        title="Show it as a fraction",
        description="Group the items, then name the part of the whole as a fraction.",
        sub_kinds=[SubKind.DISCRETE],
        initial_phases=[Phase.GROUPING],
    ),
    LessonOut(
        lesson_kind=LessonKind.VALUE_FINDING,
        title="How much is the fraction?",
        description="Find one part of the whole, then the value of the fraction.",
        sub_kinds=[SubKind.DISCRETE, SubKind.LENGTH],
        initial_phases=[Phase.UNIT_VALUE, Phase.RULER_PARTITION],
    ),
]


def session_out(session: LessonSession, registry: SessionRegistry) -> SessionOut:
    view = derive_view(session)
    return SessionOut(
        session_id=session.id,
        problem=ProblemOut.model_validate(session.problem),
        phase=session.phase,
        pending_inputs=dict(session.pending_inputs),
        outcome=session.outcome,
        tutor_message=session.tutor_message,
        explanation_pending=registry.is_explaining(session.id),
        view=ViewOut(
            is_partitioned=view.is_partitioned,
            active_segments=view.active_segments,
            inputs_enabled=sorted(view.inputs_enabled),
        ),
    )


def _session_or_404(registry: SessionRegistry, session_id: str) -> LessonSession:
    try:
        return registry.get(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="session not found")


@router.get("/lessons", response_model=List[LessonOut])
def list_lessons():
    return LESSONS


@router.post("/lessons", response_model=SessionOut, status_code=201)
def start_lesson(req: StartLessonRequest, registry: SessionRegistry = Depends(get_registry)):
    session = registry.open(req.lesson_kind, replaces=req.replaces)
    return session_out(session, registry)


@router.get("/sessions/{session_id}", response_model=SessionOut)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    with registry.lock:
        session = _session_or_404(registry, session_id)
        return session_out(session, registry)


@router.post("/sessions/{session_id}/next", response_model=SessionOut, status_code=201)
def next_problem(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    # The previous outcome does not matter; the old session is dropped whole.
    try:
        session = registry.advance(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="session not found")
    return session_out(session, registry)


@router.delete("/sessions/{session_id}")
def leave_lesson(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Back to the menu."""
    try:
        registry.close(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="session not found")
    return {"ok": True}
