"""
Lesson session: the answer-validation state machine for one problem.

Each phase has exactly one mutator. A mutator called outside its phase
raises PhaseError and changes nothing.

    naming:               GROUPING -> FRACTION_INPUT -> RESOLVED
    value finding/discrete: UNIT_VALUE -> VALUE_INPUT -> RESOLVED
    value finding/length:   RULER_PARTITION -> SEGMENT_COLORING -> VALUE_INPUT -> RESOLVED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional
from uuid import uuid4

from answers import parse_whole_number
from problems import LessonKind, Problem, SubKind
from tutor import HintPool

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    GROUPING = "grouping"
    FRACTION_INPUT = "fraction_input"
    UNIT_VALUE = "unit_value"
    RULER_PARTITION = "ruler_partition"
    SEGMENT_COLORING = "segment_coloring"
    VALUE_INPUT = "value_input"
    RESOLVED = "resolved"


class StepStatus(str, Enum):
    ACCEPTED = "accepted"  # gate passed or final answer correct
    RETRY = "retry"  # well formed but wrong, or out of range
    INVALID = "invalid"  # malformed text; nothing changed


# Typed/clicked fields each phase accepts
PHASE_FIELDS: Dict[Phase, FrozenSet[str]] = {
    Phase.GROUPING: frozenset({"groups"}),
    Phase.FRACTION_INPUT: frozenset({"numerator", "denominator"}),
    Phase.UNIT_VALUE: frozenset({"unit_value"}),
    Phase.RULER_PARTITION: frozenset({"tick"}),
    Phase.SEGMENT_COLORING: frozenset({"segment"}),
    Phase.VALUE_INPUT: frozenset({"value"}),
    Phase.RESOLVED: frozenset(),
}


def initial_phase(problem: Problem) -> Phase:
    if problem.lesson_kind is LessonKind.NAMING:
        return Phase.GROUPING
    if problem.sub_kind is SubKind.LENGTH:
        return Phase.RULER_PARTITION
    return Phase.UNIT_VALUE


class PhaseError(RuntimeError):
    def __init__(self, expected: Phase, actual: Phase):
        super().__init__(f"operation needs phase {expected.value!r}, session is in {actual.value!r}")
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True)
class StepResult:
    status: StepStatus
    phase: Phase
    message: str
    outcome: Optional[bool] = None
    # Set on a well-formed final check: the explanation request as of this check
    ticket: Optional[int] = None
    fields: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is not StepStatus.INVALID


class LessonSession:
    def __init__(self, problem: Problem, hints: Optional[HintPool] = None):
        self.id = uuid4().hex
        self.problem = problem
        self.phase = initial_phase(problem)
        self.pending_inputs: Dict[str, str] = {}
        self.active_segments = 0
        self.outcome: Optional[bool] = None
        # Fields as they stood at the latest well-formed final check
        self.submitted_fields: Dict[str, str] = {}
        self.tutor_message = "Look at the problem carefully and give it a try!"
        # Bumped on every final check, malformed ones included; stale explanations are dropped
        self.explanation_ticket = 0
        self._hints = hints or HintPool()

    # --- helpers -------------------------------------------------------------

    @property
    def initial_phase(self) -> Phase:
        return initial_phase(self.problem)

    @property
    def is_resolved(self) -> bool:
        return self.phase is Phase.RESOLVED

    def _require(self, phase: Phase) -> None:
        if self.phase is not phase:
            raise PhaseError(phase, self.phase)

    def _move(self, phase: Phase) -> None:
        logger.info(f"session {self.id}: {self.phase.value} -> {phase.value}")
        self.phase = phase
        keep = PHASE_FIELDS[phase]
        self.pending_inputs = {k: v for k, v in self.pending_inputs.items() if k in keep}

    def _say(self, status: StepStatus, message: str, outcome: Optional[bool] = None) -> StepResult:
        self.tutor_message = message
        return StepResult(status=status, phase=self.phase, message=message, outcome=outcome)

    def _read(self, field: str, text: str):
        self.pending_inputs[field] = text
        try:
            return parse_whole_number(text), None
        except ValueError as e:
            return None, str(e)

    def final_fields(self) -> Dict[str, str]:
        """Raw text of the fields submitted at the final check."""
        if self.problem.lesson_kind is LessonKind.NAMING:
            keys = ("numerator", "denominator")
        else:
            keys = ("value",)
        return {k: self.pending_inputs[k] for k in keys if k in self.pending_inputs}

    def _final(self, correct: bool) -> StepResult:
        self.outcome = correct
        self.submitted_fields = self.final_fields()
        self.explanation_ticket += 1
        hint = self._hints.pick(correct)
        if correct:
            self._move(Phase.RESOLVED)
        self.tutor_message = hint
        return StepResult(
            status=StepStatus.ACCEPTED if correct else StepStatus.RETRY,
            phase=self.phase,
            message=hint,
            outcome=correct,
            ticket=self.explanation_ticket,
            fields=dict(self.submitted_fields),
        )

    def _malformed_final(self, message: str) -> StepResult:
        # The inline prompt outranks any explanation still on its way
        self.explanation_ticket += 1
        return self._say(StepStatus.INVALID, message)

    # --- naming --------------------------------------------------------------

    def submit_groups(self, text: str) -> StepResult:
        self._require(Phase.GROUPING)
        g, err = self._read("groups", text)
        if err:
            return self._say(StepStatus.INVALID, f"{err} How many groups are there?")

        p = self.problem
        if g != p.total_groups:
            return self._say(
                StepStatus.RETRY,
                f"Not quite! Put all {p.total_items} items into groups of {p.group_size}.",
            )
        self._move(Phase.FRACTION_INPUT)
        return self._say(
            StepStatus.ACCEPTED,
            f"{self._hints.pick(True)} Now write the fraction.",
        )

    def submit_fraction(self, numerator_text: str, denominator_text: str) -> StepResult:
        self._require(Phase.FRACTION_INPUT)
        num, num_err = self._read("numerator", numerator_text)
        den, den_err = self._read("denominator", denominator_text)
        if num_err or den_err:
            return self._malformed_final("Fill in both numbers of the fraction!")

        p = self.problem
        return self._final(num == p.target_groups and den == p.total_groups)

    # --- value finding: discrete ---------------------------------------------

    def submit_unit_value(self, text: str) -> StepResult:
        self._require(Phase.UNIT_VALUE)
        u, err = self._read("unit_value", text)
        if err:
            return self._say(StepStatus.INVALID, err)

        p = self.problem
        if u != p.group_size:
            return self._say(
                StepStatus.RETRY,
                f"Not yet. If you share {p.total_items} items equally into "
                f"{p.total_groups} groups, how many are in one group?",
            )
        self._move(Phase.VALUE_INPUT)
        return self._say(
            StepStatus.ACCEPTED,
            f"{self._hints.pick(True)} The items are grouped. Now find the whole value.",
        )

    # --- value finding: length -----------------------------------------------

    def pick_tick(self, tick: int) -> StepResult:
        self._require(Phase.RULER_PARTITION)
        p = self.problem
        if not 1 <= tick <= p.total_items:
            return self._say(
                StepStatus.RETRY,
                f"Pick a mark between 1 and {p.total_items} on the ruler.",
            )
        self.pending_inputs["tick"] = str(tick)
        if tick != p.group_size:
            return self._say(
                StepStatus.RETRY,
                f"To split {p.total_items}cm into {p.total_groups} equal parts, "
                "how long must one part be?",
            )
        self._move(Phase.SEGMENT_COLORING)
        self.active_segments = 0
        return self._say(
            StepStatus.ACCEPTED,
            f"{self._hints.pick(True)} One part is {tick}cm. "
            f"Now color {p.target_groups} parts!",
        )

    def pick_segment(self, index: int) -> StepResult:
        """
        Color segments 0..index. The count only grows, so repeating an
        already colored index (or picking a lower one) changes nothing.
        """
        self._require(Phase.SEGMENT_COLORING)
        p = self.problem
        if index < 0 or index + 1 > p.target_groups:
            return self._say(
                StepStatus.RETRY,
                f"Wait! The numerator is {p.target_groups}, "
                f"so color only {p.target_groups} parts.",
            )

        self.pending_inputs["segment"] = str(index)
        self.active_segments = max(self.active_segments, index + 1)
        if self.active_segments < p.target_groups:
            return self._say(
                StepStatus.ACCEPTED,
                f"{self.active_segments} of {p.target_groups} parts colored.",
            )
        self._move(Phase.VALUE_INPUT)
        return self._say(
            StepStatus.ACCEPTED,
            f"Well done! Now write how many cm {p.target_groups} parts are.",
        )

    # --- final value (both value-finding sub-kinds) --------------------------

    def submit_value(self, text: str) -> StepResult:
        self._require(Phase.VALUE_INPUT)
        v, err = self._read("value", text)
        if err:
            return self._malformed_final(f"{err} Enter your answer.")
        return self._final(v == self.problem.target_items)
