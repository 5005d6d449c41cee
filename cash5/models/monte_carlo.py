"""
Repeat Probability Model for NJ Cash 5

Estimates how likely a future draw is to reproduce a combination that has
already been drawn. With H distinct historical combinations out of
C = C(45,5) = 1,221,759, one draw repeats history with p = H / C, and at
least one of the next n draws does with 1 - (1 - p)^n.

Closed form, not a resampling simulation: draws are assumed independent
and p constant over the horizon.
"""
import math

from cash5.analysis import historical_sets
from cash5.config import TOTAL_COMBINATIONS
from cash5.draw import format_combo

HORIZONS = (30, 90, 365, 3650)
HORIZON_LABELS = {
    30: "next 30 draws",
    90: "next 90 draws",
    365: "next 365 draws",
    3650: "next 10 years",
}


def repeat_probability(p, n):
    """P(at least one success in n independent trials of probability p)."""
    if p <= 0:
        return 0.0
    if p >= 1:
        return 1.0
    # -expm1(n * log1p(-p)) == 1 - (1 - p)^n without cancellation for small p
    return -math.expm1(n * math.log1p(-p))


def repeat_probabilities(historical_count, total=TOTAL_COMBINATIONS, horizons=HORIZONS):
    """
    Repeat probability for each horizon.

    Parameters
    ----------
    historical_count : int
        Distinct combinations drawn so far (H).
    total : int
        Size of the combination space (C).
    horizons : iterable of int
        Numbers of future draws.

    Returns
    -------
    dict {horizon: probability}
    """
    if total <= 0:
        raise ValueError("total must be positive")
    p = min(max(historical_count / total, 0.0), 1.0)
    return {n: repeat_probability(p, n) for n in horizons}


def predict(df):
    """
    Repeat probabilities from the distinct combinations in the archive.

    Returns
    -------
    dict with:
        'historical_combinations': distinct combinations drawn (H)
        'coverage': H / C
        'probabilities': {horizon: probability}
    """
    distinct = {format_combo(combo) for combo in historical_sets(df)}
    count = len(distinct)
    return {
        "model_name": "RepeatProbability",
        "historical_combinations": count,
        "total_combinations": TOTAL_COMBINATIONS,
        "coverage": count / TOTAL_COMBINATIONS,
        "probabilities": repeat_probabilities(count),
    }
