import numpy as np
import pytest

from cash5.config import TOTAL_COMBINATIONS
from cash5.models import annealing, distance, monte_carlo


# ── Distance ─────────────────────────────────────────────────────────────

def test_hamming_distance_properties():
    a, b = [1, 2, 3, 4, 5], [3, 4, 5, 6, 7]

    assert distance.hamming_distance(a, a) == 0
    assert distance.hamming_distance(a, b) == distance.hamming_distance(b, a) == 4
    assert distance.hamming_distance(a, [41, 42, 43, 44, 45]) == 10


def test_min_distance_one_number_different():
    assert distance.min_distance_to_history([1, 2, 3, 4, 5], [[1, 2, 3, 4, 6]]) == 2
    assert distance.numbers_different(2) == 1


def test_min_distance_empty_history():
    assert distance.min_distance_to_history([1, 2, 3, 4, 5], []) == distance.MAX_DISTANCE


def test_history_index_matches_pairwise():
    rng = np.random.default_rng(3)
    history = [distance.random_combination(rng) for _ in range(50)]
    index = distance.HistoryIndex(history)
    combo = distance.random_combination(rng)

    expected = [distance.hamming_distance(combo, h) for h in history]
    assert list(index.distances(combo)) == expected
    assert index.min_distance(combo) == min(expected)
    assert index.mean_distance(combo) == pytest.approx(np.mean(expected))
    assert len(index) == 50


def test_random_combination_is_valid():
    rng = np.random.default_rng(0)
    for _ in range(100):
        combo = distance.random_combination(rng)
        assert len(set(combo)) == 5
        assert combo == sorted(combo)
        assert 1 <= combo[0] and combo[-1] <= 45


def test_distance_statistics():
    history = [[1, 2, 3, 4, 5]]
    stats = distance.distance_statistics(history, samples=200, rng=np.random.default_rng(1))

    assert stats["samples"] == 200
    assert 0 <= stats["avg_min_distance"] <= stats["best_min_distance"] <= 10
    assert stats["avg_min_distance"] == stats["avg_mean_distance"]


def test_random_search_scores_its_combo():
    history = [[1, 2, 3, 4, 5], [6, 7, 8, 9, 10]]
    combo, score = distance.random_search(history, iterations=50, rng=np.random.default_rng(2))

    assert score == distance.min_distance_to_history(combo, history)


def test_distance_predict(sample_frame):
    result = distance.predict(sample_frame, rng=np.random.default_rng(5))

    assert result["history_size"] == 120
    assert len(result["top_numbers"]) == 5


# ── Annealing ────────────────────────────────────────────────────────────

def test_perturb_changes_one_number():
    rng = np.random.default_rng(4)
    combo = [1, 2, 3, 4, 5]
    for _ in range(50):
        neighbor = annealing.perturb(combo, rng)
        assert len(set(neighbor)) == 5
        assert neighbor == sorted(neighbor)
        assert len(set(neighbor) & set(combo)) == 4


def test_acceptance_probability():
    assert annealing.acceptance_probability(2, 10.0) == 1.0
    assert annealing.acceptance_probability(-2, 2.0) == pytest.approx(np.exp(-1))
    assert annealing.acceptance_probability(-2, 0.0) == 0.0
    assert annealing.acceptance_probability(0, 0.0) == 1.0


def test_annealing_best_never_decreases(sample_frame):
    from cash5.analysis import historical_sets

    history = historical_sets(sample_frame)
    result = annealing.simulated_annealing_search(history, iterations=300,
                                                  rng=np.random.default_rng(11))

    assert result.total_moves == 300
    assert len(result.best_trace) == 300
    assert all(a <= b for a, b in zip(result.best_trace, result.best_trace[1:]))
    assert result.best_score >= result.initial_score
    assert result.best_score == result.best_trace[-1]
    assert result.best_score == distance.min_distance_to_history(result.best_combo, history)
    assert 0.0 <= result.acceptance_rate <= 1.0


def test_annealing_reports_true_initial_score():
    history = [[1, 2, 3, 4, 5]]
    result = annealing.simulated_annealing_search(history, iterations=10, start=[1, 2, 3, 4, 6],
                                                  rng=np.random.default_rng(0))

    assert result.initial_score == 2
    assert result.improvement == result.best_score - 2


def test_annealing_is_reproducible_with_seed():
    history = [[1, 2, 3, 4, 5], [10, 20, 30, 40, 45]]
    first = annealing.best_annealing_search(history, runs=2, iterations=100, rng=np.random.default_rng(9))
    second = annealing.best_annealing_search(history, runs=2, iterations=100, rng=np.random.default_rng(9))

    assert first.best_combo == second.best_combo
    assert first.best_score == second.best_score


def test_annealing_empty_history_is_max_distance():
    result = annealing.simulated_annealing_search([], iterations=5, rng=np.random.default_rng(0))

    assert result.best_score == distance.MAX_DISTANCE


# ── Repeat probability ───────────────────────────────────────────────────

def test_repeat_probability_no_history_is_zero():
    assert all(p == 0.0 for p in monte_carlo.repeat_probabilities(0).values())


def test_repeat_probability_full_coverage_is_one():
    probs = monte_carlo.repeat_probabilities(TOTAL_COMBINATIONS)

    assert all(p == 1.0 for p in probs.values())


def test_repeat_probability_grows_with_horizon():
    probs = monte_carlo.repeat_probabilities(5000)

    values = [probs[n] for n in monte_carlo.HORIZONS]
    assert values == sorted(values)
    p = 5000 / TOTAL_COMBINATIONS
    assert probs[30] == pytest.approx(1 - (1 - p) ** 30)


def test_repeat_probability_rejects_empty_space():
    with pytest.raises(ValueError):
        monte_carlo.repeat_probabilities(1, total=0)


def test_monte_carlo_predict(sample_frame):
    result = monte_carlo.predict(sample_frame)

    assert result["historical_combinations"] <= 120
    assert result["total_combinations"] == 1_221_759
    assert set(result["probabilities"]) == {30, 90, 365, 3650}


# ── Distance properties ──────────────────────────────────────────────────

def test_hamming_distance_even_bounded_and_symmetric():
    rng = np.random.default_rng(21)
    for _ in range(500):
        a = distance.random_combination(rng)
        b = distance.random_combination(rng)
        d = distance.hamming_distance(a, b)
        assert d in (0, 2, 4, 6, 8, 10)
        assert d == distance.hamming_distance(b, a)
        assert distance.hamming_distance(a, a) == 0


def test_distance_statistics_matches_per_sample_distances():
    history = [distance.random_combination(np.random.default_rng(s)) for s in range(30)]
    stats = distance.distance_statistics(history, samples=100, rng=np.random.default_rng(8))

    replay = np.random.default_rng(8)
    mins, means = [], []
    for _ in range(100):
        combo = distance.random_combination(replay)
        dists = [distance.hamming_distance(combo, h) for h in history]
        mins.append(min(dists))
        means.append(np.mean(dists))

    assert stats["avg_min_distance"] == pytest.approx(np.mean(mins))
    assert stats["avg_mean_distance"] == pytest.approx(np.mean(means))
    assert stats["best_min_distance"] == max(mins)


def test_distance_statistics_empty_history():
    stats = distance.distance_statistics([], samples=10, rng=np.random.default_rng(0))

    assert stats["avg_min_distance"] == distance.MAX_DISTANCE
    assert stats["best_min_distance"] == distance.MAX_DISTANCE


def test_distance_examples_newest_first(sample_frame):
    combo = [1, 2, 3, 4, 5]
    examples = distance.distance_examples(sample_frame, combo)

    assert [e["date"] for e in examples] == ["2024-04-29", "2024-04-28", "2024-04-27"]
    for e in examples:
        assert e["distance"] == distance.hamming_distance(combo, e["numbers"])
