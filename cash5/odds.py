"""
Jackpot odds table for playing 1..N distinct combinations.
"""
import pandas as pd

from cash5.config import TICKET_COST, TOTAL_COMBINATIONS


def odds_table(max_combos=30, jackpot_dollars=0, ticket_cost=TICKET_COST):
    """
    Odds of hitting the jackpot with 1..max_combos distinct combinations.

    Returns
    -------
    pd.DataFrame with columns combos, cost, one_in, probability and, when a
    jackpot is known, ev (probability x jackpot - cost).
    """
    if max_combos < 1:
        raise ValueError("max_combos must be at least 1")
    max_combos = min(max_combos, TOTAL_COMBINATIONS)

    rows = []
    for n in range(1, max_combos + 1):
        cost = n * ticket_cost
        prob = n / TOTAL_COMBINATIONS
        row = {
            "combos": n,
            "cost": cost,
            "one_in": -(-TOTAL_COMBINATIONS // n),  # ceiling division
            "probability": prob,
        }
        if jackpot_dollars > 0:
            row["ev"] = prob * jackpot_dollars - cost
        rows.append(row)
    return pd.DataFrame(rows)


def format_probability(pct):
    """Percentage with enough decimals to be meaningful."""
    if pct >= 1.0:
        return f"{pct:.4f}%"
    return f"{pct:.6f}%"


def format_ev(ev):
    return f"+${ev:.2f}" if ev >= 0 else f"-${-ev:.2f}"
