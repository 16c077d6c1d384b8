"""
Shared fixtures for the DE studio tests.
"""

from collections import deque
from typing import Iterable

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from de_studio.population import Individual


class ScriptedRandom:
    """Random source that replays fixed integer and float sequences."""

    def __init__(self, ints: Iterable[int] = (), floats: Iterable[float] = ()):
        self.ints = deque(ints)
        self.floats = deque(floats)
        self.int_calls = []

    def integers(self, n):
        v = self.ints.popleft()
        assert 0 <= v < n, f"scripted int {v} outside [0, {n})"
        self.int_calls.append(n)
        return v

    def random(self):
        return self.floats.popleft()


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def four_points():
    return [
        Individual(x=-1.0, y=2.0, color="#ff0000"),
        Individual(x=0.5, y=0.5, color="#00ff00"),
        Individual(x=1.5, y=-0.5, color="#0000ff"),
        Individual(x=0.0, y=1.0, color="#ffff00"),
    ]
