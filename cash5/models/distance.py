"""
Combinatorial Distance Model for NJ Cash 5

Scores a 5-number combination by its Hamming distance to every historical
draw: the number of balls not shared, |A| + |B| - 2|A n B|, from 0
(identical) to 10 (disjoint). The fitness of a combination is its minimum
distance to history, i.e. how close it comes to anything ever drawn.

Also provides the random-sampling baseline the annealing search is compared
against.
"""

import numpy as np

from cash5.analysis import historical_sets
from cash5.config import (
    DISTANCE_SAMPLES,
    MAX_NUMBER,
    NUMBERS_PER_DRAW,
    RANDOM_SEARCH_ITERATIONS,
)
from cash5.store import NUM_COLS

MAX_DISTANCE = 2 * NUMBERS_PER_DRAW


def hamming_distance(a, b):
    """Count of numbers in exactly one of the two combinations."""
    a, b = set(a), set(b)
    return len(a) + len(b) - 2 * len(a & b)


def numbers_different(distance):
    """Convert a distance to the 0-5 'numbers different' reporting scale."""
    return distance / 2


def _indicator(combo):
    vec = np.zeros(MAX_NUMBER, dtype=np.int16)
    vec[np.asarray(sorted(set(combo)), dtype=int) - 1] = 1
    return vec


class HistoryIndex:
    """
    Incidence matrix of historical draws for vectorised distance queries.

    Row i has a 1 in column n-1 for every number n in draw i, so the
    matches between a combination and every draw are one matrix product.
    """

    def __init__(self, history):
        history = [sorted(set(combo)) for combo in history]
        self._matrix = np.zeros((len(history), MAX_NUMBER), dtype=np.int16)
        for row, combo in enumerate(history):
            self._matrix[row, np.asarray(combo, dtype=int) - 1] = 1
        self._sizes = self._matrix.sum(axis=1)

    def __len__(self):
        return self._matrix.shape[0]

    def distances(self, combo):
        vec = _indicator(combo)
        matches = self._matrix @ vec
        return self._sizes + int(vec.sum()) - 2 * matches

    def min_distance(self, combo):
        """Smallest distance to any draw, MAX_DISTANCE for an empty history."""
        if len(self) == 0:
            return MAX_DISTANCE
        return int(self.distances(combo).min())

    def mean_distance(self, combo):
        if len(self) == 0:
            return float(MAX_DISTANCE)
        return float(self.distances(combo).mean())


def _as_index(history):
    return history if isinstance(history, HistoryIndex) else HistoryIndex(history)


def min_distance_to_history(combo, history):
    """Fitness of *combo*: its minimum distance to any historical draw."""
    return _as_index(history).min_distance(combo)


def random_combination(rng=None):
    """Uniform 5-of-45 combination without replacement, sorted."""
    rng = rng if rng is not None else np.random.default_rng()
    drawn = rng.choice(MAX_NUMBER, size=NUMBERS_PER_DRAW, replace=False) + 1
    return sorted(int(n) for n in drawn)


def distance_statistics(history, samples=DISTANCE_SAMPLES, rng=None):
    """
    Distance profile of random combinations against history.

    Parameters
    ----------
    history : list of combinations or HistoryIndex
    samples : int
        Number of random combinations drawn.
    rng : np.random.Generator, optional

    Returns
    -------
    dict with keys:
        avg_min_distance  : mean over samples of the min distance to history
        avg_mean_distance : mean over samples of the mean distance to history
        best_min_distance : largest min distance observed
        samples           : int
    """
    rng = rng if rng is not None else np.random.default_rng()
    index = _as_index(history)

    min_dists = np.empty(samples, dtype=float)
    mean_dists = np.empty(samples, dtype=float)
    for i in range(samples):
        combo = random_combination(rng)
        if len(index) == 0:
            min_dists[i] = mean_dists[i] = MAX_DISTANCE
            continue
        dists = index.distances(combo)
        min_dists[i] = dists.min()
        mean_dists[i] = dists.mean()

    return {
        "avg_min_distance": float(min_dists.mean()) if samples else 0.0,
        "avg_mean_distance": float(mean_dists.mean()) if samples else 0.0,
        "best_min_distance": float(min_dists.max()) if samples else 0.0,
        "samples": samples,
    }


def random_search(history, iterations=RANDOM_SEARCH_ITERATIONS, rng=None):
    """
    Best of *iterations* random combinations by min distance to history.

    Returns
    -------
    (combo, score)
    """
    rng = rng if rng is not None else np.random.default_rng()
    index = _as_index(history)

    best_combo, best_score = None, -1
    for _ in range(iterations):
        combo = random_combination(rng)
        score = index.min_distance(combo)
        if score > best_score:
            best_combo, best_score = combo, score
    return best_combo, best_score


def distance_examples(df, combo, n=3):
    """
    Distance from *combo* to each of the *n* most recent valid draws, newest first.

    Returns
    -------
    list of dicts {date, numbers, distance}
    """
    historical_sets(df)  # raises NoDataError without valid draws
    recent = df[df["valid"]].sort_values("draw_time").tail(n).iloc[::-1]
    examples = []
    for _, row in recent.iterrows():
        numbers = [int(row[c]) for c in NUM_COLS]
        examples.append({
            "date": row["date"].strftime("%Y-%m-%d"),
            "numbers": numbers,
            "distance": hamming_distance(combo, numbers),
        })
    return examples


def predict(df, rng=None):
    """
    Random-sampling baseline over the draw archive.

    Returns
    -------
    dict with:
        'top_numbers': best combination found by random search
        'score': its min distance to history
        'statistics': distance_statistics result
    """
    rng = rng if rng is not None else np.random.default_rng()
    index = HistoryIndex(historical_sets(df))
    combo, score = random_search(index, rng=rng)
    return {
        "model_name": "RandomSearch",
        "top_numbers": combo,
        "score": score,
        "iterations": RANDOM_SEARCH_ITERATIONS,
        "statistics": distance_statistics(index, rng=rng),
        "history_size": len(index),
    }
