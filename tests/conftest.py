from __future__ import annotations

from typing import Iterator

import pytest

from deps.services import get_registry, get_tutor
from helpers import ScriptedRandom
from main import app
from registry import SessionRegistry
from tutor import HintPool


@pytest.fixture
def use_problem() -> Iterator:
    """Route the API to a registry that always deals the given problem."""

    def install(group_size, total_groups, target_groups, length=False) -> SessionRegistry:
        rng = ScriptedRandom(group_size, total_groups, target_groups, length=length)
        registry = SessionRegistry(rng=rng, hints=HintPool(0))
        app.dependency_overrides[get_registry] = lambda: registry
        return registry

    yield install
    app.dependency_overrides.pop(get_registry, None)


@pytest.fixture
def use_tutor() -> Iterator:
    def install(tutor):
        app.dependency_overrides[get_tutor] = lambda: tutor
        return tutor

    yield install
    app.dependency_overrides.pop(get_tutor, None)
