"""
NJ Cash 5 - Statistical Analysis Engine

Frequency, co-occurrence and chi-squared uniformity analyses over the draw
archive, plus the history checks shown in the statistics report (duplicate
combinations, consecutive pairs, jackpot winners, closest matches).

Data schema expected (see cash5.store.to_frame):
    id, draw_time, date, year, num1-num5 (sorted), payout,
    estimated_jackpot, valid

Numbers range 1-45, five per draw. Only rows with valid=True are analysed.
"""
import logging
from collections import Counter, namedtuple
from itertools import combinations

import numpy as np
import pandas as pd
from scipy import stats

from cash5.config import ALL_NUMBERS, LOW_BOUND, MAX_NUMBER, NUMBERS_PER_DRAW
from cash5.draw import format_combo
from cash5.store import NUM_COLS

logger = logging.getLogger(__name__)

NumberCount = namedtuple("NumberCount", ["num", "count"])

# Chi-squared critical values by degrees of freedom: (p=0.05, p=0.01)
CRITICAL_VALUES = {
    44: (60.48, 66.77),
    1: (3.84, 6.63),
}
MIN_DRAWS_PER_YEAR = 30
HOT_WINDOWS = (30, 60, 90)
EXPECTED_CONSECUTIVE_RATE = 4.0 / 44.0


class NoDataError(ValueError):
    """Raised when there are no valid draws to analyse."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _valid_draws(df: pd.DataFrame) -> pd.DataFrame:
    """Valid rows sorted by draw time. Raises NoDataError if there are none."""
    if "valid" in df.columns:
        df = df[df["valid"]]
    if len(df) == 0:
        raise NoDataError("no draws found")
    return df.sort_values("draw_time").reset_index(drop=True)


def _main_numbers_flat(df: pd.DataFrame) -> np.ndarray:
    """Every drawn number, one entry per ball."""
    return df[NUM_COLS].values.flatten()


def _rows_as_sorted_tuples(df: pd.DataFrame) -> list:
    return [tuple(int(n) for n in row) for row in df[NUM_COLS].values]


def historical_sets(df: pd.DataFrame) -> list:
    """Sorted number lists of every valid draw, oldest first."""
    return [list(t) for t in _rows_as_sorted_tuples(_valid_draws(df))]


def top_n(freq: dict, n: int) -> list:
    """Highest counts first, ties broken by ascending number."""
    ranked = sorted(freq.items(), key=lambda x: (-x[1], x[0]))
    return [NumberCount(num, count) for num, count in ranked[:n]]


def bottom_n(freq: dict, n: int, domain=None) -> list:
    """Lowest counts first, ties broken by ascending number.

    With *domain*, numbers missing from *freq* count as zero.
    """
    if domain is not None:
        freq = {num: freq.get(num, 0) for num in domain}
    ranked = sorted(freq.items(), key=lambda x: (x[1], x[0]))
    return [NumberCount(num, count) for num, count in ranked[:n]]


def find_most_common(freq: dict) -> NumberCount:
    if not freq:
        raise NoDataError("empty frequency table")
    return top_n(freq, 1)[0]


def find_least_common(freq: dict) -> NumberCount:
    if not freq:
        raise NoDataError("empty frequency table")
    return bottom_n(freq, 1)[0]


# ===================================================================
# 1. Frequency Analysis
# ===================================================================

def frequency_analysis(df: pd.DataFrame) -> dict:
    """
    Count each number 1-45 across all draws and at each sorted position.

    Returns
    -------
    dict with keys:
        overall     : dict {number: count} over all 45 numbers
        positional  : list of 5 Counters {number: count}, observed numbers only
        ranked      : list of NumberCount, most frequent first
        total_draws : int
        total_balls : int
    """
    df = _valid_draws(df)

    counter = Counter(int(n) for n in _main_numbers_flat(df))
    overall = {n: counter.get(n, 0) for n in ALL_NUMBERS}
    positional = [Counter(int(n) for n in df[col]) for col in NUM_COLS]

    return {
        "overall": overall,
        "positional": positional,
        "ranked": top_n(overall, MAX_NUMBER),
        "total_draws": len(df),
        "total_balls": len(df) * NUMBERS_PER_DRAW,
    }


# ===================================================================
# 2. Hot / Cold Numbers
# ===================================================================

def rolling_frequency(df: pd.DataFrame, days: int) -> dict:
    """
    Counts over draws made strictly after (newest draw - *days*).

    Returns
    -------
    dict with keys:
        counts : dict {number: count} over all 45 numbers
        draws  : number of draws in the window
        cutoff : pd.Timestamp
    """
    df = _valid_draws(df)
    cutoff = df["date"].max() - pd.Timedelta(days=days)
    recent = df[df["date"] > cutoff]
    counter = Counter(int(n) for n in _main_numbers_flat(recent))
    return {
        "counts": {n: counter.get(n, 0) for n in ALL_NUMBERS},
        "draws": len(recent),
        "cutoff": cutoff,
    }


def hot_cold_numbers(df: pd.DataFrame, n: int = 5) -> dict:
    """
    Hot  : top-n most frequent in the last 30 days.
    Cold : bottom-n least frequent in the last 90 days (unseen numbers count).

    Returns
    -------
    dict with keys:
        windows : dict {days: rolling_frequency result} for 30/60/90
        hot_30  : list of NumberCount
        cold_90 : list of NumberCount
    """
    windows = {days: rolling_frequency(df, days) for days in HOT_WINDOWS}
    seen_30 = {num: c for num, c in windows[30]["counts"].items() if c > 0}
    return {
        "windows": windows,
        "hot_30": top_n(seen_30, n),
        "cold_90": bottom_n(windows[90]["counts"], n, domain=ALL_NUMBERS),
    }


# ===================================================================
# 3. Pair Analysis
# ===================================================================

def pair_frequency(df: pd.DataFrame, n: int = 5) -> dict:
    """
    Co-occurrence count of every pair drawn together.

    Returns
    -------
    dict with keys:
        counts    : Counter {(a, b): count}
        top_pairs : list of ((a, b), count), ties broken by ascending pair
    """
    df = _valid_draws(df)
    counter: Counter = Counter()
    for nums in _rows_as_sorted_tuples(df):
        counter.update(combinations(nums, 2))
    ranked = sorted(counter.items(), key=lambda x: (-x[1], x[0]))
    return {
        "counts": counter,
        "top_pairs": ranked[:n],
    }


# ===================================================================
# 4. Chi-Squared Uniformity
# ===================================================================

def chi_squared(observed, expected) -> float:
    """Pearson statistic sum((o - e)^2 / e) over buckets with e > 0."""
    observed = np.asarray(observed, dtype=float)
    expected = np.asarray(expected, dtype=float)
    mask = expected > 0
    diff = observed[mask] - expected[mask]
    return float(np.sum(diff * diff / expected[mask]))


def _critical_values(dof: int) -> tuple:
    if dof in CRITICAL_VALUES:
        return CRITICAL_VALUES[dof]
    return (round(float(stats.chi2.ppf(0.95, dof)), 2),
            round(float(stats.chi2.ppf(0.99, dof)), 2))


def uniformity_test(counts: dict, total: int = None, domain=None, weights=None) -> dict:
    """
    Chi-squared goodness-of-fit of *counts* against a uniform expectation.

    Parameters
    ----------
    counts : dict {bucket: observed count}
    total : int, optional
        Number of observations. Defaults to the sum of the counts.
    domain : sequence, optional
        Buckets to test, default numbers 1-45. Missing buckets count as zero.
    weights : sequence of float, optional
        Expected share of each bucket, default 1/len(domain).

    Returns
    -------
    dict with keys:
        statistic, dof, p_value, critical_05, critical_01,
        status ("uniform" / "possibly non-uniform" / "non-uniform"),
        uniform (bool, statistic below the p=0.05 critical value),
        observed, expected, total
    """
    domain = list(ALL_NUMBERS if domain is None else domain)
    observed = np.array([counts.get(b, 0) for b in domain], dtype=float)
    if total is None:
        total = int(observed.sum())
    if weights is None:
        shares = np.full(len(domain), 1.0 / len(domain))
    else:
        shares = np.asarray(weights, dtype=float)
        shares = shares / shares.sum()
    expected = total * shares
    dof = len(domain) - 1

    if total > 0:
        statistic = chi_squared(observed, expected)
        p_value = float(stats.chi2.sf(statistic, dof))
    else:
        statistic, p_value = 0.0, 1.0

    crit_05, crit_01 = _critical_values(dof)
    if statistic < crit_05:
        status = "uniform"
    elif statistic < crit_01:
        status = "possibly non-uniform"
    else:
        status = "non-uniform"

    return {
        "statistic": round(statistic, 4),
        "dof": dof,
        "p_value": round(p_value, 6),
        "critical_05": crit_05,
        "critical_01": crit_01,
        "status": status,
        "uniform": status == "uniform",
        "observed": observed.astype(int).tolist(),
        "expected": expected.tolist(),
        "total": total,
    }


def overall_uniformity(df: pd.DataFrame) -> dict:
    """All-position frequency over 1-45, N = 5 x draws, df = 44."""
    freq = frequency_analysis(df)
    return uniformity_test(freq["overall"], total=freq["total_balls"])


def positional_uniformity(df: pd.DataFrame) -> dict:
    """
    One test per sorted position, N = number of draws.

    Returns
    -------
    dict with keys:
        positions   : list of 5 uniformity_test results
        all_uniform : bool
    """
    freq = frequency_analysis(df)
    positions = [uniformity_test(pos, total=freq["total_draws"]) for pos in freq["positional"]]
    return {
        "positions": positions,
        "all_uniform": all(p["uniform"] for p in positions),
    }


def yearly_uniformity(df: pd.DataFrame, min_draws: int = MIN_DRAWS_PER_YEAR) -> list:
    """
    Overall-frequency test per calendar year with at least *min_draws* draws.

    Returns
    -------
    list of dicts {year, draws, **uniformity_test}, ascending by year
    """
    df = _valid_draws(df)
    results = []
    for year, group in df.groupby("year"):
        if len(group) < min_draws:
            continue
        counter = Counter(int(n) for n in _main_numbers_flat(group))
        test = uniformity_test(counter, total=len(group) * NUMBERS_PER_DRAW)
        results.append({"year": int(year), "draws": len(group), **test})
    return results


def low_high_split(df: pd.DataFrame) -> dict:
    """
    Low (1-22) vs high (23-45) balls, df = 1.

    Expected counts follow bucket widths (22/45 and 23/45).
    """
    df = _valid_draws(df)
    flat = _main_numbers_flat(df)
    low = int(np.sum(flat <= LOW_BOUND))
    high = int(len(flat) - low)
    test = uniformity_test(
        {"low": low, "high": high},
        domain=["low", "high"],
        weights=[LOW_BOUND, MAX_NUMBER - LOW_BOUND],
    )
    return {
        "low": low,
        "high": high,
        "expected_low": test["expected"][0],
        "expected_high": test["expected"][1],
        **test,
    }


# ===================================================================
# 5. History Checks
# ===================================================================

def sequential_pairs(df: pd.DataFrame) -> dict:
    """Adjacent sorted numbers that are consecutive, against a 4/44 rate."""
    df = _valid_draws(df)
    values = df[NUM_COLS].values
    steps = np.diff(values, axis=1)
    consecutive = int(np.sum(steps == 1))
    total_pairs = int(steps.size)
    rate = consecutive / total_pairs
    deviation = (rate - EXPECTED_CONSECUTIVE_RATE) / EXPECTED_CONSECUTIVE_RATE * 100
    return {
        "consecutive_pairs": consecutive,
        "total_pairs": total_pairs,
        "rate": rate,
        "expected_rate": EXPECTED_CONSECUTIVE_RATE,
        "deviation_pct": round(deviation, 2),
        "within_expected": -10 < deviation < 10,
    }


def duplicate_combinations(df: pd.DataFrame) -> dict:
    """
    Winning combinations drawn more than once.

    Returns
    -------
    dict with keys:
        unique     : number of distinct combinations
        draws      : number of draws
        duplicates : list of {combo, dates}, ordered by first occurrence
    """
    df = _valid_draws(df)
    seen = {}
    for nums, date in zip(_rows_as_sorted_tuples(df), df["date"]):
        seen.setdefault(format_combo(nums), []).append(date.strftime("%Y-%m-%d"))
    duplicates = [{"combo": combo, "dates": dates} for combo, dates in seen.items() if len(dates) > 1]
    return {
        "unique": len(seen),
        "draws": len(df),
        "duplicates": duplicates,
    }


def payout_summary(df: pd.DataFrame) -> dict:
    """
    Jackpot (5/5) winners: count, biggest and smallest prize, spacing.

    Returns
    -------
    dict with keys:
        winners        : int
        biggest        : dict {payout, date, combo} or None
        smallest       : dict {payout, date, combo} or None
        avg_days_between, longest_gap_days, days_since_last_win : float/int or None
    """
    df = _valid_draws(df)
    winners = df[df["payout"] > 0]
    summary = {
        "winners": len(winners),
        "biggest": None,
        "smallest": None,
        "avg_days_between": None,
        "longest_gap_days": None,
        "days_since_last_win": None,
    }
    if len(winners) == 0:
        return summary

    def _describe(row):
        return {
            "payout": int(row["payout"]),
            "date": row["date"].strftime("%Y-%m-%d"),
            "combo": format_combo(int(row[c]) for c in NUM_COLS),
        }

    summary["biggest"] = _describe(winners.loc[winners["payout"].idxmax()])
    summary["smallest"] = _describe(winners.loc[winners["payout"].idxmin()])

    if len(winners) > 1:
        # calendar days, so a DST change does not shorten a gap
        days = winners["date"].dt.tz_localize(None).dt.normalize()
        gaps = days.diff().dropna().dt.days
        summary["avg_days_between"] = round(float(gaps.mean()), 1)
        summary["longest_gap_days"] = int(gaps.max())
        last_day = df["date"].max().tz_localize(None).normalize()
        summary["days_since_last_win"] = int((last_day - days.max()).days)
    return summary


def repeat_check(df: pd.DataFrame) -> dict:
    """Whether the last winning numbers were ever drawn before."""
    df = _valid_draws(df)
    last = df.iloc[-1]
    combo = [int(last[c]) for c in NUM_COLS]
    last_date = last["date"].strftime("%Y-%m-%d")
    prior = [
        date.strftime("%Y-%m-%d")
        for nums, date in zip(_rows_as_sorted_tuples(df.iloc[:-1]), df["date"].iloc[:-1])
        if list(nums) == combo and date.strftime("%Y-%m-%d") != last_date
    ]
    return {
        "combo": combo,
        "date": last_date,
        "prior_dates": prior,
        "repeated": bool(prior),
    }


def closest_matches(df: pd.DataFrame, combo, min_matches: int = 3, limit: int = 5,
                    exclude_date: str = None) -> list:
    """
    Historical draws sharing at least *min_matches* numbers with *combo*.

    Sorted by match count, then most recent first.
    """
    df = _valid_draws(df)
    target = set(combo)
    found = []
    for nums, date, draw_time in zip(_rows_as_sorted_tuples(df), df["date"], df["draw_time"]):
        day = date.strftime("%Y-%m-%d")
        if day == exclude_date:
            continue
        matches = len(target.intersection(nums))
        if matches >= min_matches:
            found.append({"date": day, "numbers": list(nums), "matches": matches,
                          "draw_time": int(draw_time)})
    found.sort(key=lambda m: (-m["matches"], -m["draw_time"]))
    return found[:limit]


# ===================================================================
# Master function
# ===================================================================

def get_full_analysis(df: pd.DataFrame) -> dict:
    """
    Run every analysis function and return a dict of all results.

    Raises NoDataError when the archive holds no valid draws.
    """
    results = {}

    logger.info("[Analysis] Running frequency analysis ...")
    results["frequency"] = frequency_analysis(df)

    logger.info("[Analysis] Running hot/cold analysis ...")
    results["hot_cold"] = hot_cold_numbers(df)

    logger.info("[Analysis] Running pair analysis ...")
    results["pairs"] = pair_frequency(df)

    logger.info("[Analysis] Running chi-squared uniformity tests ...")
    results["uniformity"] = overall_uniformity(df)
    results["positional_uniformity"] = positional_uniformity(df)
    results["yearly_uniformity"] = yearly_uniformity(df)
    results["low_high"] = low_high_split(df)

    logger.info("[Analysis] Running history checks ...")
    results["sequential_pairs"] = sequential_pairs(df)
    results["duplicates"] = duplicate_combinations(df)
    results["payouts"] = payout_summary(df)

    issues = 0
    if not results["positional_uniformity"]["all_uniform"]:
        issues += 1
    if not results["low_high"]["uniform"]:
        issues += 1
    results["issues_found"] = issues

    logger.info("[Analysis] All analyses complete.")
    return results
