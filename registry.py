"""
Live lesson sessions, keyed by session id.

A session is only ever replaced wholesale: "next problem", switching lesson
and returning to the menu drop the old session (problem and inputs together)
and cancel its outstanding explanation request. An explanation that completes
anyway is applied only while the same session, at the same final check, is
still registered.

Sessions nobody has touched for ``idle_s`` seconds are dropped, and the
registry never holds more than ``max_sessions``; the least recently used
session goes first.
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from lesson import LessonSession
from problems import LessonKind, generate_problem
from tutor import ExplainContext, HintPool, TutorFeedbackService, fetch_explanation

logger = logging.getLogger(__name__)


class SessionNotFound(KeyError):
    pass


class SessionRegistry:
    def __init__(
        self,
        rng: Optional[Any] = None,
        hints: Optional[HintPool] = None,
        max_sessions: int = 1000,
        idle_s: Optional[float] = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._rng = rng if rng is not None else random.Random()
        self._hints = hints or HintPool()
        self._max_sessions = max_sessions
        self._idle_s = idle_s if idle_s and idle_s > 0 else None
        self._clock = clock
        self._sessions: Dict[str, LessonSession] = {}
        self._seen: Dict[str, float] = {}
        self._pending: Dict[str, asyncio.Task] = {}
        # One submission is processed to completion before the next
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self.lock:
            return session_id in self._sessions

    def open(self, lesson_kind: LessonKind, replaces: Optional[str] = None) -> LessonSession:
        if replaces is not None:
            try:
                self.close(replaces)
            except SessionNotFound:
                logger.info(f"session {replaces}: already gone, nothing to replace")

        problem = generate_problem(lesson_kind, self._rng)
        session = LessonSession(problem, hints=self._hints)
        with self.lock:
            dropped = self._evict_locked()
            self._sessions[session.id] = session
            self._seen[session.id] = self._clock()
        for session_id, task in dropped:
            self._cancel(session_id, task)
            logger.info(f"session {session_id} evicted")
        logger.info(
            f"session {session.id} opened: {problem.lesson_kind.value}/{problem.sub_kind.value} "
            f"{problem.target_groups}/{problem.total_groups} of {problem.total_items}"
        )
        return session

    def get(self, session_id: str) -> LessonSession:
        with self.lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._seen[session_id] = self._clock()
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def close(self, session_id: str) -> LessonSession:
        with self.lock:
            session, task = self._drop_locked(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        self._cancel(session_id, task)
        logger.info(f"session {session_id} closed")
        return session

    def advance(self, session_id: str) -> LessonSession:
        """Next problem: discard the session, start a fresh one of the same lesson."""
        old = self.close(session_id)
        return self.open(old.problem.lesson_kind)

    def _drop_locked(
        self, session_id: str
    ) -> Tuple[Optional[LessonSession], Optional[asyncio.Task]]:
        self._seen.pop(session_id, None)
        return self._sessions.pop(session_id, None), self._pending.pop(session_id, None)

    def _evict_locked(self) -> List[Tuple[str, Optional[asyncio.Task]]]:
        """Make room for one more session. Caller holds the lock."""
        victims: List[str] = []
        if self._idle_s is not None:
            cutoff = self._clock() - self._idle_s
            victims = [sid for sid, seen in self._seen.items() if seen < cutoff]
        overflow = len(self._sessions) - len(victims) - self._max_sessions + 1
        if overflow > 0:
            rest = sorted(
                (sid for sid in self._seen if sid not in victims), key=self._seen.__getitem__
            )
            victims.extend(rest[:overflow])
        return [(sid, self._drop_locked(sid)[1]) for sid in victims]

    def _cancel(self, session_id: str, task: Optional[asyncio.Task]) -> None:
        if task is not None and not task.done():
            # may run on a worker thread; cancel on the task's own loop
            task.get_loop().call_soon_threadsafe(task.cancel)
            logger.info(f"session {session_id}: cancelled pending explanation")

    # --- explanations ------------------------------------------------------------

    def apply_explanation(self, session_id: str, ticket: int, text: str) -> bool:
        with self.lock:
            session = self._sessions.get(session_id)
            if session is None or session.explanation_ticket != ticket:
                logger.info(f"session {session_id}: discarded stale explanation (ticket {ticket})")
                return False
            session.tutor_message = text
        return True

    async def run_explanation(
        self,
        tutor: TutorFeedbackService,
        session_id: str,
        ticket: int,
        context: ExplainContext,
        fallback: str,
        timeout: float,
    ) -> bool:
        with self.lock:
            if session_id not in self._sessions:
                return False
            task = asyncio.ensure_future(fetch_explanation(tutor, context, fallback, timeout))
            previous = self._pending.get(session_id)
            self._pending[session_id] = task
        if previous is not None and not previous.done():
            previous.cancel()

        try:
            # wait() leaves a cancelled fetch to be inspected below; only our
            # own cancellation raises here
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            with self.lock:
                if self._pending.get(session_id) is task:
                    del self._pending[session_id]

        if task.cancelled():
            logger.info(f"session {session_id}: explanation superseded (ticket {ticket})")
            return False
        return self.apply_explanation(session_id, ticket, task.result())

    def is_explaining(self, session_id: str) -> bool:
        with self.lock:
            task = self._pending.get(session_id)
        return task is not None and not task.done()
