from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet

from lesson import PHASE_FIELDS, LessonSession


@dataclass(frozen=True)
class SessionView:
    """Everything the renderer needs; it never infers correctness itself."""

    is_partitioned: bool
    active_segments: int
    inputs_enabled: FrozenSet[str]


def derive_view(session: LessonSession) -> SessionView:
    return SessionView(
        # past the first gate of its flow
        is_partitioned=session.phase is not session.initial_phase,
        active_segments=session.active_segments,
        inputs_enabled=PHASE_FIELDS[session.phase],
    )
