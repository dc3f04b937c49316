"""Randomized "part of a whole" fraction problems."""

from __future__ import annotations

import random
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator

GROUP_SIZES = (2, 3, 4, 5)
MIN_GROUPS = 2
MAX_ITEMS = 20
ITEM_GLYPHS = ("orange", "apple", "strawberry", "star")
RULER_GLYPH = "ruler"


class LessonKind(str, Enum):
    NAMING = "naming"  # name the fraction shown by grouped items
    VALUE_FINDING = "value_finding"  # find the value of a fraction of a whole


class SubKind(str, Enum):
    DISCRETE = "discrete"
    LENGTH = "length"


class Problem(BaseModel):
    model_config = ConfigDict(frozen=True)

    lesson_kind: LessonKind
    sub_kind: SubKind
    group_size: int
    total_groups: int  # denominator
    total_items: int
    target_groups: int  # numerator
    target_items: int  # expected final value
    item_glyph: str

    @model_validator(mode="after")
    def _check_invariants(self) -> "Problem":
        if self.group_size not in GROUP_SIZES:
            raise ValueError(f"group_size must be one of {GROUP_SIZES}")
        if self.total_groups < MIN_GROUPS:
            raise ValueError(f"total_groups must be >= {MIN_GROUPS}")
        if self.group_size * self.total_groups != self.total_items:
            raise ValueError("total_items must equal group_size * total_groups")
        if self.total_items > MAX_ITEMS:
            raise ValueError(f"total_items must be <= {MAX_ITEMS}")
        if not 1 <= self.target_groups < self.total_groups:
            raise ValueError("target_groups must be in [1, total_groups - 1]")
        if self.target_items != self.target_groups * self.group_size:
            raise ValueError("target_items must equal target_groups * group_size")
        if self.sub_kind is SubKind.LENGTH and self.lesson_kind is not LessonKind.VALUE_FINDING:
            raise ValueError("length problems only exist in value-finding lessons")
        return self

    @classmethod
    def build(
        cls,
        lesson_kind: LessonKind,
        group_size: int,
        total_groups: int,
        target_groups: int,
        sub_kind: SubKind = SubKind.DISCRETE,
        item_glyph: Optional[str] = None,
    ) -> "Problem":
        """Fill in the derived counts; invariants are still checked."""
        if item_glyph is None:
            item_glyph = RULER_GLYPH if sub_kind is SubKind.LENGTH else ITEM_GLYPHS[0]
        return cls(
            lesson_kind=lesson_kind,
            sub_kind=sub_kind,
            group_size=group_size,
            total_groups=total_groups,
            total_items=group_size * total_groups,
            target_groups=target_groups,
            target_items=target_groups * group_size,
            item_glyph=item_glyph,
        )

    def describe(self) -> str:
        unit = "cm" if self.sub_kind is SubKind.LENGTH else f"{self.item_glyph}s"
        return (
            f"{self.target_groups}/{self.total_groups} of {self.total_items} {unit} "
            f"is {self.target_items} {unit} "
            f"({self.total_groups} groups of {self.group_size})"
        )


def generate_problem(lesson_kind: LessonKind, rng: Optional[Any] = None) -> Problem:
    """
    Draw a fresh problem for `lesson_kind`.

    `rng` is any object with the `random.Random` interface (`choice`,
    `randint`, `random`); the module-level generator is used when omitted.
    Every draw is feasible: group_size <= 5 keeps at least 4 groups possible.
    """
    lesson_kind = LessonKind(lesson_kind)
    r = rng if rng is not None else random

    group_size = r.choice(GROUP_SIZES)
    max_groups = MAX_ITEMS // group_size
    total_groups = r.randint(MIN_GROUPS, max_groups)
    target_groups = r.randint(1, total_groups - 1)

    sub_kind = SubKind.DISCRETE
    if lesson_kind is LessonKind.VALUE_FINDING and r.random() < 0.5:
        sub_kind = SubKind.LENGTH

    if sub_kind is SubKind.LENGTH:
        item_glyph = RULER_GLYPH
    else:
        item_glyph = r.choice(ITEM_GLYPHS)

    return Problem.build(
        lesson_kind,
        group_size=group_size,
        total_groups=total_groups,
        target_groups=target_groups,
        sub_kind=sub_kind,
        item_glyph=item_glyph,
    )
