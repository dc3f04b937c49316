# routers/steps.py
#
# One endpoint per lesson phase. Each request is validated to completion
# under the registry lock; a wrong-phase call is a 409 and changes nothing.
from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from config import TUTOR_TIMEOUT_S
from deps.services import get_registry, get_tutor
from lesson import LessonSession, PhaseError, StepResult
from registry import SessionRegistry
from routers.lessons import _session_or_404, session_out
from schemas.lessons import (
    AnswerRequest,
    FractionRequest,
    SegmentRequest,
    StepResponse,
    TickRequest,
)
from tutor import ExplainContext, TutorFeedbackService

router = APIRouter(prefix="/sessions/{session_id}", tags=["steps"])


def _step(
    registry: SessionRegistry,
    session_id: str,
    op: Callable[[LessonSession], StepResult],
) -> tuple[LessonSession, StepResult]:
    with registry.lock:
        session = _session_or_404(registry, session_id)
        try:
            result = op(session)
        except PhaseError as e:
            raise HTTPException(
                status_code=409,
                detail={
                    "error": "wrong_phase",
                    "message": str(e),
                    "expected": e.expected.value,
                    "phase": e.actual.value,
                },
            )
    return session, result


def _respond(session: LessonSession, result: StepResult, registry: SessionRegistry) -> StepResponse:
    with registry.lock:
        return StepResponse(
            ok=result.ok,
            status=result.status,
            phase=result.phase,
            message=result.message,
            outcome=result.outcome,
            session=session_out(session, registry),
        )


def _final_check(
    session: LessonSession,
    result: StepResult,
    registry: SessionRegistry,
    tutor: TutorFeedbackService,
    background: BackgroundTasks,
) -> StepResponse:
    # Outcome and phase are already fixed; the explanation only updates the message.
    # Ticket and fields come from the result, taken under the lock with the check itself.
    if result.outcome is not None:
        context = ExplainContext(
            problem=session.problem,
            outcome=result.outcome,
            submitted_fields=result.fields,
        )
        background.add_task(
            registry.run_explanation,
            tutor,
            session.id,
            result.ticket,
            context,
            result.message,
            TUTOR_TIMEOUT_S,
        )
    return _respond(session, result, registry)


@router.post("/groups", response_model=StepResponse)
def submit_groups(
    session_id: str, req: AnswerRequest, registry: SessionRegistry = Depends(get_registry)
):
    session, result = _step(registry, session_id, lambda s: s.submit_groups(req.answer))
    return _respond(session, result, registry)


@router.post("/fraction", response_model=StepResponse)
def submit_fraction(
    session_id: str,
    req: FractionRequest,
    background: BackgroundTasks,
    registry: SessionRegistry = Depends(get_registry),
    tutor: TutorFeedbackService = Depends(get_tutor),
):
    session, result = _step(
        registry, session_id, lambda s: s.submit_fraction(req.numerator, req.denominator)
    )
    return _final_check(session, result, registry, tutor, background)


@router.post("/unit-value", response_model=StepResponse)
def submit_unit_value(
    session_id: str, req: AnswerRequest, registry: SessionRegistry = Depends(get_registry)
):
    session, result = _step(registry, session_id, lambda s: s.submit_unit_value(req.answer))
    return _respond(session, result, registry)


@router.post("/ruler", response_model=StepResponse)
def pick_tick(session_id: str, req: TickRequest, registry: SessionRegistry = Depends(get_registry)):
    session, result = _step(registry, session_id, lambda s: s.pick_tick(req.tick))
    return _respond(session, result, registry)


@router.post("/segments", response_model=StepResponse)
def pick_segment(
    session_id: str, req: SegmentRequest, registry: SessionRegistry = Depends(get_registry)
):
    session, result = _step(registry, session_id, lambda s: s.pick_segment(req.index))
    return _respond(session, result, registry)


@router.post("/value", response_model=StepResponse)
def submit_value(
    session_id: str,
    req: AnswerRequest,
    background: BackgroundTasks,
    registry: SessionRegistry = Depends(get_registry),
    tutor: TutorFeedbackService = Depends(get_tutor),
):
    session, result = _step(registry, session_id, lambda s: s.submit_value(req.answer))
    return _final_check(session, result, registry, tutor, background)
