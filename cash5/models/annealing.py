"""
Simulated Annealing Search for NJ Cash 5

Searches for the combination whose minimum Hamming distance to every
historical draw is as large as possible.

- State: one sorted 5-of-45 combination.
- Neighbour: one random position replaced by an unused number, re-sorted.
- Acceptance: strict improvements always; otherwise with probability
  exp(delta / T) (Metropolis), delta = neighbour score - current score.
- Cooling: T <- T * cooling_rate after every iteration.

The best combination ever visited is tracked apart from the current state.
"""
import math
from dataclasses import dataclass, field
from typing import List

import numpy as np

from cash5.analysis import historical_sets
from cash5.config import (
    ANNEALING_COOLING_RATE,
    ANNEALING_INITIAL_TEMP,
    ANNEALING_ITERATIONS,
    MAX_NUMBER,
    RECOMMENDATION_ITERATIONS,
    RECOMMENDATION_RUNS,
)
from cash5.models.distance import HistoryIndex, random_combination


@dataclass
class SearchState:
    """Mutable state of one annealing run."""

    current: List[int]
    current_score: int
    best: List[int]
    best_score: int
    temperature: float
    iteration: int = 0
    accepted: int = 0


@dataclass
class AnnealingResult:
    best_combo: List[int]
    best_score: int
    initial_score: int
    final_score: int
    accepted_moves: int
    total_moves: int
    best_trace: List[int] = field(default_factory=list, repr=False)

    @property
    def acceptance_rate(self) -> float:
        return self.accepted_moves / self.total_moves if self.total_moves else 0.0

    @property
    def improvement(self) -> int:
        return self.best_score - self.initial_score


def perturb(combo, rng):
    """Replace one random position with a number not in *combo*."""
    neighbor = list(combo)
    pos = int(rng.integers(len(neighbor)))
    unused = [n for n in range(1, MAX_NUMBER + 1) if n not in neighbor]
    neighbor[pos] = int(rng.choice(unused))
    return sorted(neighbor)


def acceptance_probability(delta, temperature):
    """Metropolis rule: 1 for improvements, exp(delta / T) otherwise."""
    if delta > 0:
        return 1.0
    if temperature <= 0:
        return 1.0 if delta == 0 else 0.0
    return math.exp(delta / temperature)


def simulated_annealing_search(history, iterations=ANNEALING_ITERATIONS,
                               initial_temp=ANNEALING_INITIAL_TEMP,
                               cooling_rate=ANNEALING_COOLING_RATE, rng=None, start=None):
    """
    Run one annealing search against *history*.

    Parameters
    ----------
    history : list of combinations or HistoryIndex
    iterations : int
        Fixed number of neighbour proposals; the run always ends.
    initial_temp, cooling_rate : float
        Geometric cooling schedule.
    rng : np.random.Generator, optional
    start : list of int, optional
        Starting combination, random when omitted.

    Returns
    -------
    AnnealingResult
        initial_score is the score of the actual starting combination.
    """
    rng = rng if rng is not None else np.random.default_rng()
    index = history if isinstance(history, HistoryIndex) else HistoryIndex(history)

    current = sorted(start) if start is not None else random_combination(rng)
    score = index.min_distance(current)
    state = SearchState(current=current, current_score=score, best=list(current),
                        best_score=score, temperature=initial_temp)
    initial_score = score
    trace = []

    for _ in range(iterations):
        neighbor = perturb(state.current, rng)
        neighbor_score = index.min_distance(neighbor)
        delta = neighbor_score - state.current_score

        if delta > 0 or rng.random() < acceptance_probability(delta, state.temperature):
            state.current = neighbor
            state.current_score = neighbor_score
            state.accepted += 1
            if state.current_score > state.best_score:
                state.best = list(state.current)
                state.best_score = state.current_score

        state.temperature *= cooling_rate
        state.iteration += 1
        trace.append(state.best_score)

    return AnnealingResult(
        best_combo=state.best,
        best_score=state.best_score,
        initial_score=initial_score,
        final_score=state.current_score,
        accepted_moves=state.accepted,
        total_moves=state.iteration,
        best_trace=trace,
    )


def best_annealing_search(history, runs=RECOMMENDATION_RUNS,
                          iterations=RECOMMENDATION_ITERATIONS, rng=None, **kwargs):
    """Best of *runs* independent searches; the earliest run wins ties."""
    rng = rng if rng is not None else np.random.default_rng()
    index = history if isinstance(history, HistoryIndex) else HistoryIndex(history)
    best = None
    for _ in range(runs):
        result = simulated_annealing_search(index, iterations=iterations, rng=rng, **kwargs)
        if best is None or result.best_score > best.best_score:
            best = result
    return best


def predict(df, rng=None):
    """
    Run the full-length annealing search over the draw archive.

    Returns
    -------
    dict with:
        'top_numbers': best combination found
        'result': AnnealingResult
    """
    result = simulated_annealing_search(historical_sets(df), rng=rng)
    return {
        "model_name": "SimulatedAnnealing",
        "top_numbers": result.best_combo,
        "score": result.best_score,
        "result": result,
        "iterations": ANNEALING_ITERATIONS,
        "initial_temp": ANNEALING_INITIAL_TEMP,
        "cooling_rate": ANNEALING_COOLING_RATE,
    }
