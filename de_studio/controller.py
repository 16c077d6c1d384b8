from __future__ import annotations

import dataclasses
import logging
import math
import numbers
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from . import engine
from .engine import StepResult, TrialRecord
from .population import (
    DEFAULT_BOUNDS,
    Bounds,
    Individual,
    initialize_population,
    make_rng,
    population_diversity,
    population_fitness,
)
from .utils import clamp

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ParameterRange:
    minimum: float
    maximum: float
    symbol: str
    integer: bool = False
    unit: str = ""

    def contains(self, v: float) -> bool:
        if isinstance(v, bool) or not isinstance(v, numbers.Real):
            return False
        if self.integer and (not math.isfinite(v) or float(v) != int(v)):
            return False
        return self.minimum <= v <= self.maximum

    def clamp(self, v: float) -> float:
        v = clamp(float(v), self.minimum, self.maximum)
        return int(round(v)) if self.integer else v

    def constraint_text(self) -> str:
        return f"{self.minimum:g} ≤ {self.symbol} ≤ {self.maximum:g}"


PARAMETER_RANGES: Dict[str, ParameterRange] = {
    "population_size": ParameterRange(4, 36, "NP", integer=True),
    "crossover_probability": ParameterRange(0.0, 1.0, "CR"),
    "differential_weight": ParameterRange(0.0, 2.0, "F"),
    "max_iterations": ParameterRange(1, 1000, "i", integer=True),
    "step_interval_ms": ParameterRange(30, 1000, "ms", integer=True, unit="ms"),
}

PARAMETER_LABELS: Dict[str, str] = {
    "population_size": "Population Size",
    "crossover_probability": "Crossover Probability",
    "differential_weight": "Differential Weight",
    "max_iterations": "Iterations",
    "step_interval_ms": "Interval Duration",
}


@dataclass(frozen=True)
class DEConfig:
    population_size: int = 10
    crossover_probability: float = 0.9
    differential_weight: float = 0.8
    max_iterations: int = 68
    step_interval_ms: int = 100

    @property
    def F(self) -> float:
        return self.differential_weight

    @property
    def CR(self) -> float:
        return self.crossover_probability

    def errors(self) -> List[str]:
        out: List[str] = []
        for name, limits in PARAMETER_RANGES.items():
            v = getattr(self, name)
            if not limits.contains(v):
                kind = "an integer" if limits.integer else "a"
                out.append(f"{name}={v!r} must be {kind} value in [{limits.minimum:g}, {limits.maximum:g}]")
        return out

    def validate(self) -> "DEConfig":
        errs = self.errors()
        if errs:
            raise ConfigError("Invalid configuration: " + "; ".join(errs))
        # integral floats and numpy ints come back as plain ints
        coerced = {
            name: int(getattr(self, name))
            for name, limits in PARAMETER_RANGES.items()
            if limits.integer and type(getattr(self, name)) is not int
        }
        return dataclasses.replace(self, **coerced) if coerced else self

    def clamped(self) -> "DEConfig":
        values = {name: limits.clamp(getattr(self, name)) for name, limits in PARAMETER_RANGES.items()}
        return DEConfig(**values)

    def replace(self, **changes) -> "DEConfig":
        unknown = sorted(set(changes) - set(PARAMETER_RANGES))
        if unknown:
            raise ConfigError(f"Unknown parameter(s): {', '.join(unknown)}")
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class RunSnapshot:
    generation: int
    population: Tuple[Individual, ...]
    prev_population: Optional[Tuple[Individual, ...]]
    trace: Tuple[TrialRecord, ...]
    running: bool
    state: str
    best_fitness: float


class RunController:
    """Owns the run state and mutates it only through its commands.

    The controller never schedules anything itself: a host calls ``tick()``
    on its own timer (Tk ``after``, a test loop, ...) and ``tick`` steps only
    while running. ``step()`` always performs one transition.
    """

    def __init__(self, config: Optional[DEConfig] = None, rng=None, bounds: Bounds = DEFAULT_BOUNDS):
        self.config = (config or DEConfig()).validate()
        self.rng = rng if rng is not None else make_rng()
        self.bounds = bounds

        self.running = False
        # idle until the first start or step after construction or reset
        self._idle = True
        self.generation = 0
        self.population: List[Individual] = []
        self.prev_population: Optional[List[Individual]] = None
        self.trace: List[TrialRecord] = []

        self.best_history: List[float] = []
        self.diversity_history: List[float] = []

        self._listeners: List[Callable[["RunController"], None]] = []

        self._reinitialize("startup")

    @property
    def state(self) -> str:
        if self.running:
            return "running"
        if self._idle:
            return "idle"
        return "paused"

    @property
    def best_fitness(self) -> float:
        if not self.population:
            return float("inf")
        return float(population_fitness(self.population).min())

    def subscribe(self, callback: Callable[["RunController"], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for cb in list(self._listeners):
            cb(self)

    def _record_history(self) -> None:
        self.best_history.append(self.best_fitness)
        self.diversity_history.append(population_diversity(self.population))

    def _reinitialize(self, reason: str) -> None:
        self.population = initialize_population(self.bounds, self.config.population_size, self.rng)
        self.prev_population = None
        self.trace = []
        self.generation = 0
        self.best_history = []
        self.diversity_history = []
        self._record_history()
        logger.info("Population initialized (%s): size=%d best_f=%.6e", reason, len(self.population), self.best_fitness)

    def start(self) -> None:
        self.running = True
        self._idle = False
        self._notify()

    def stop(self) -> None:
        self.running = False
        self._notify()

    def toggle(self) -> bool:
        if self.running:
            self.stop()
        else:
            self.start()
        return self.running

    def step(self) -> Optional[StepResult]:
        self._idle = False
        if self.generation >= self.config.max_iterations:
            logger.info("Reached max_iterations=%d, restarting experiment", self.config.max_iterations)
            self._reinitialize("wraparound")
            self._notify()
            return None

        result = engine.step(self.population, self.config.F, self.config.CR, self.rng)
        self.prev_population = self.population
        self.population = result.next_population
        self.trace = result.trace
        self.generation += 1
        self._record_history()

        logger.debug(
            "Generation %d: accepted=%d/%d best_f=%.6e",
            self.generation,
            result.accepted_count,
            len(result.trace),
            self.best_fitness,
        )
        self._notify()
        return result

    def tick(self) -> bool:
        if not self.running:
            return False
        self.step()
        return True

    def reset(self) -> None:
        self.running = False
        self._idle = True
        self._reinitialize("reset")
        self._notify()

    def set_parameters(self, **changes) -> DEConfig:
        try:
            new_cfg = self.config.replace(**changes).validate()
        except ConfigError as exc:
            logger.warning("Rejected parameter change %r: %s", changes, exc)
            raise

        old_size = self.config.population_size
        self.config = new_cfg
        if new_cfg.population_size != old_size:
            self._reinitialize("population size changed")
        self._notify()
        return new_cfg

    def run(self, generations: int) -> List[float]:
        for _ in range(max(0, int(generations))):
            self.step()
        return list(self.best_history)

    def snapshot(self) -> RunSnapshot:
        return RunSnapshot(
            generation=self.generation,
            population=tuple(self.population),
            prev_population=None if self.prev_population is None else tuple(self.prev_population),
            trace=tuple(self.trace),
            running=self.running,
            state=self.state,
            best_fitness=self.best_fitness,
        )
