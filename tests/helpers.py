from __future__ import annotations

import random

from problems import GROUP_SIZES
from tutor import ExplainContext


class ScriptedRandom(random.Random):
    """Forces the generator's draws to a chosen problem, every time."""

    def __init__(self, group_size, total_groups, target_groups, length=False, glyph="apple"):
        super().__init__(0)
        self.group_size = group_size
        self.total_groups = total_groups
        self.target_groups = target_groups
        self.length = length
        self.glyph = glyph

    def choice(self, seq):
        if tuple(seq) == GROUP_SIZES:
            return self.group_size
        assert self.glyph in seq
        return self.glyph

    def randint(self, a, b):
        value = self.total_groups if a == 2 else self.target_groups
        assert a <= value <= b, (a, value, b)
        return value

    def random(self):
        return 0.0 if self.length else 0.99


class EchoTutor:
    name = "echo"

    def __init__(self):
        self.explained = []

    async def greeting(self) -> str:
        return "hello from echo"

    def hint(self, correct: bool) -> str:
        return "yes" if correct else "no"

    async def explain(self, context: ExplainContext) -> str:
        self.explained.append(context)
        return f"explained {context.problem.target_groups}/{context.problem.total_groups}"


class BrokenTutor(EchoTutor):
    name = "broken"

    async def greeting(self) -> str:
        raise ConnectionError("tutor offline")

    async def explain(self, context: ExplainContext) -> str:
        raise ConnectionError("tutor offline")


