# schemas/lessons.py
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from lesson import Phase, StepStatus
from problems import LessonKind, SubKind

# ---------- Lesson menu ----------


class LessonOut(BaseModel):
    lesson_kind: LessonKind
    title: str
    description: str
    sub_kinds: List[SubKind]
    initial_phases: List[Phase]


class StartLessonRequest(BaseModel):
    lesson_kind: LessonKind
    # session being left for this lesson; it is dropped like on "next problem"
    replaces: Optional[str] = None


# ---------- Session state ----------


class ProblemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    lesson_kind: LessonKind
    sub_kind: SubKind
    group_size: int
    total_groups: int
    total_items: int
    target_groups: int
    target_items: int
    item_glyph: str


class ViewOut(BaseModel):
    is_partitioned: bool
    active_segments: int
    # sorted so clients get a stable order
    inputs_enabled: List[str]


class SessionOut(BaseModel):
    session_id: str
    problem: ProblemOut
    phase: Phase
    pending_inputs: Dict[str, str]
    outcome: Optional[bool] = None
    tutor_message: str
    explanation_pending: bool = False
    view: ViewOut


# ---------- Step submissions ----------


class AnswerRequest(BaseModel):
    answer: str


class FractionRequest(BaseModel):
    numerator: str
    denominator: str


class TickRequest(BaseModel):
    tick: int


class SegmentRequest(BaseModel):
    index: int


class StepResponse(BaseModel):
    ok: bool
    status: StepStatus
    phase: Phase
    message: str
    outcome: Optional[bool] = None
    session: SessionOut
