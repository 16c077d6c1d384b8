from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from .objective import rosenbrock
from .population import MIN_POPULATION_SIZE, Individual

MUTANT = "mutant"
TARGET = "target"


@dataclass(frozen=True)
class TrialRecord:
    index: int
    prev_x: float
    prev_y: float
    prev_fitness: float

    a_index: int
    b_index: int
    c_index: int
    a_x: float
    a_y: float
    b_x: float
    b_y: float
    c_x: float
    c_y: float

    # v = a + F * (b - c)
    mutation_x: float
    mutation_y: float

    source_x: str
    source_y: str
    j_rand: int

    trial_x: float
    trial_y: float
    trial_fitness: float

    accepted: bool
    new_x: float
    new_y: float

    def donors(self) -> Tuple[int, int, int]:
        return self.a_index, self.b_index, self.c_index

    def sources(self) -> Tuple[str, str]:
        return self.source_x, self.source_y


@dataclass
class StepResult:
    next_population: List[Individual]
    trace: List[TrialRecord] = field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return sum(1 for r in self.trace if r.accepted)


def random_index_excluding(exclude: Sequence[int], length: int, rng) -> int:
    while True:
        idx = int(rng.integers(length))
        if idx not in exclude:
            return idx


def select_donors(i: int, length: int, rng) -> Tuple[int, int, int]:
    a = random_index_excluding([i], length, rng)
    b = random_index_excluding([i, a], length, rng)
    c = random_index_excluding([i, a, b], length, rng)
    return a, b, c


def _trial_for(i: int, population: Sequence[Individual], F: float, CR: float, rng) -> TrialRecord:
    target = population[i]

    # dimension guaranteed to come from the mutant: 0 -> x, 1 -> y
    j_rand = int(rng.integers(2))

    a_idx, b_idx, c_idx = select_donors(i, len(population), rng)
    a, b, c = population[a_idx], population[b_idx], population[c_idx]

    mut_x = a.x + F * (b.x - c.x)
    mut_y = a.y + F * (b.y - c.y)

    r_x = float(rng.random())
    r_y = float(rng.random())
    take_x = j_rand == 0 or r_x < CR
    take_y = j_rand == 1 or r_y < CR

    trial_x = mut_x if take_x else target.x
    trial_y = mut_y if take_y else target.y

    prev_fit = rosenbrock(target.x, target.y)
    trial_fit = rosenbrock(trial_x, trial_y)

    # ties keep the incumbent
    accepted = trial_fit < prev_fit
    new_x, new_y = (trial_x, trial_y) if accepted else (target.x, target.y)

    return TrialRecord(
        index=i,
        prev_x=target.x,
        prev_y=target.y,
        prev_fitness=prev_fit,
        a_index=a_idx,
        b_index=b_idx,
        c_index=c_idx,
        a_x=a.x,
        a_y=a.y,
        b_x=b.x,
        b_y=b.y,
        c_x=c.x,
        c_y=c.y,
        mutation_x=mut_x,
        mutation_y=mut_y,
        source_x=MUTANT if take_x else TARGET,
        source_y=MUTANT if take_y else TARGET,
        j_rand=j_rand,
        trial_x=trial_x,
        trial_y=trial_y,
        trial_fitness=trial_fit,
        accepted=accepted,
        new_x=new_x,
        new_y=new_y,
    )


def step(population: Sequence[Individual], F: float, CR: float, rng) -> StepResult:
    """Run one DE/rand/1/bin generation over ``population``.

    All reads go against the starting population, so the result does not
    depend on the order individuals are visited in. Per individual the random
    source is consumed as: j_rand, donors a, b, c (rejection sampled), then one
    uniform each for the x and y crossover tests.

    With fewer than four individuals there are not enough distinct donors;
    the population comes back unchanged with an empty trace.
    """
    if len(population) < MIN_POPULATION_SIZE:
        return StepResult(next_population=list(population), trace=[])

    next_pop: List[Individual] = []
    trace: List[TrialRecord] = []
    for i in range(len(population)):
        rec = _trial_for(i, population, F, CR, rng)
        next_pop.append(population[i].moved_to(rec.new_x, rec.new_y))
        trace.append(rec)

    return StepResult(next_population=next_pop, trace=trace)
