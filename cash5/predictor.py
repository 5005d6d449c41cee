"""
Recommendation Generation for NJ Cash 5

Builds the five daily recommendations from the frequency tables and the
annealing search. Each recommendation is a dict with the numbers, the
strategy that produced them and a short rationale.
"""
import numpy as np
import pandas as pd

from cash5.analysis import (
    NumberCount,
    bottom_n,
    frequency_analysis,
    historical_sets,
    rolling_frequency,
    top_n,
)
from cash5.config import ALL_NUMBERS, NUMBERS_PER_DRAW, RECOMMENDATION_ITERATIONS, RECOMMENDATION_RUNS
from cash5.draw import format_combo
from cash5.models.annealing import best_annealing_search

HOT_WINDOW_DAYS = 30


# ── Helpers ──────────────────────────────────────────────────────────────

def _pick_by_position(positional, most_common=True):
    """
    One number per sorted position, best first, never reusing a number.

    A number already taken by an earlier position is skipped in favour of
    the next one in that position's ranking.
    """
    chosen = []
    picks = []
    for freq in positional:
        ranked = top_n(freq, len(freq)) if most_common else bottom_n(freq, len(freq))
        pick = next((nc for nc in ranked if nc.num not in chosen), None)
        if pick is None:
            pick = NumberCount(next(n for n in ALL_NUMBERS if n not in chosen), 0)
        chosen.append(pick.num)
        picks.append(pick)
    return sorted(chosen), picks


def _recommendation(name, numbers, strategy, rationale):
    return {
        "name": name,
        "strategy": strategy,
        "numbers": sorted(numbers),
        "combo": format_combo(sorted(numbers)),
        "rationale": rationale,
    }


# ── Strategies ───────────────────────────────────────────────────────────

def most_common_by_position(freq):
    numbers, picks = _pick_by_position(freq["positional"], most_common=True)
    detail = ", ".join(f"{p.num:02d} x{p.count}" for p in picks)
    return _recommendation("position", numbers, "Most common by position",
                           f"Top number at each sorted position ({detail})")


def most_frequent_overall(freq):
    top = top_n(freq["overall"], NUMBERS_PER_DRAW)
    counts = [nc.count for nc in top]
    return _recommendation("frequent", [nc.num for nc in top], "Most frequent all-time",
                           f"Drawn {min(counts)}-{max(counts)} times each "
                           f"in {freq['total_draws']} draws")


def hot_numbers(df, days=HOT_WINDOW_DAYS):
    """Top numbers of the trailing window, or None with fewer than 5 seen."""
    window = rolling_frequency(df, days)
    seen = {num: c for num, c in window["counts"].items() if c > 0}
    if len(seen) < NUMBERS_PER_DRAW:
        return None
    top = top_n(seen, NUMBERS_PER_DRAW)
    return _recommendation("hot", [nc.num for nc in top], f"Hot numbers last {days} days",
                           f"Most frequent in the {window['draws']} draws "
                           f"of the last {days} days")


def least_common_by_position(freq):
    numbers, picks = _pick_by_position(freq["positional"], most_common=False)
    detail = ", ".join(f"{p.num:02d} x{p.count}" for p in picks)
    return _recommendation("contrarian", numbers, "Least common by position",
                           f"Rarest number seen at each sorted position ({detail})")


def annealing_pick(df, rng=None, runs=RECOMMENDATION_RUNS, iterations=RECOMMENDATION_ITERATIONS):
    result = best_annealing_search(historical_sets(df), runs=runs, iterations=iterations, rng=rng)
    return _recommendation("annealing", result.best_combo, "Simulated annealing",
                           f"Best of {runs} searches: differs from every past draw "
                           f"in at least {result.best_score // 2} numbers")


# ── Recommendation Set ───────────────────────────────────────────────────

def generate_recommendations(df: pd.DataFrame, rng=None, annealing_runs=RECOMMENDATION_RUNS,
                             annealing_iterations=RECOMMENDATION_ITERATIONS):
    """
    Ranked recommendations, in order: most common by position, most frequent
    all-time, hot numbers (when the 30-day window has enough numbers), least
    common by position, simulated annealing.

    Raises NoDataError when the archive holds no valid draws.
    """
    rng = rng if rng is not None else np.random.default_rng()
    freq = frequency_analysis(df)

    recs = [
        most_common_by_position(freq),
        most_frequent_overall(freq),
    ]
    hot = hot_numbers(df)
    if hot is not None:
        recs.append(hot)
    recs.append(least_common_by_position(freq))
    recs.append(annealing_pick(df, rng=rng, runs=annealing_runs, iterations=annealing_iterations))
    return recs
