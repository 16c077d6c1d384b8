from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .objective import rosenbrock

MIN_POPULATION_SIZE = 4


@dataclass(frozen=True)
class Bounds:
    min_x: float
    max_x: float
    min_y: float
    max_y: float


DEFAULT_BOUNDS = Bounds(min_x=-1.8, max_x=1.8, min_y=-0.8, max_y=2.8)


@dataclass(frozen=True)
class Individual:
    x: float
    y: float
    # identity token, kept for the whole lineage at this index
    color: str

    def moved_to(self, x: float, y: float) -> "Individual":
        return Individual(x=float(x), y=float(y), color=self.color)

    @property
    def fitness(self) -> float:
        return rosenbrock(self.x, self.y)


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(seed)


def random_color(rng) -> str:
    return f"#{int(rng.integers(0x1000000)):06x}"


def initialize_population(bounds: Bounds, size: int, rng) -> List[Individual]:
    if size < MIN_POPULATION_SIZE:
        raise ValueError(f"Population size must be at least {MIN_POPULATION_SIZE}, got {size}")

    pop: List[Individual] = []
    for _ in range(int(size)):
        x = bounds.min_x + float(rng.random()) * (bounds.max_x - bounds.min_x)
        y = bounds.min_y + float(rng.random()) * (bounds.max_y - bounds.min_y)
        pop.append(Individual(x=x, y=y, color=random_color(rng)))
    return pop


def population_array(pop: Sequence[Individual]) -> np.ndarray:
    if not pop:
        return np.empty((0, 2), dtype=float)
    return np.array([[p.x, p.y] for p in pop], dtype=float)


def population_fitness(pop: Sequence[Individual]) -> np.ndarray:
    return np.array([p.fitness for p in pop], dtype=float)


def population_diversity(pop: Sequence[Individual]) -> float:
    x = population_array(pop)
    if x.size == 0:
        return 0.0
    center = np.mean(x, axis=0)
    d = np.linalg.norm(x - center, axis=1)
    return float(np.mean(d))


def best_index(pop: Sequence[Individual]) -> int:
    if not pop:
        raise ValueError("Empty population has no best individual")
    return int(np.argmin(population_fitness(pop)))
