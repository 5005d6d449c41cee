#!/usr/bin/env python3
"""
NJ Cash 5 daily numbers recommender.

Running without switches will:
  1. Sync the local archive with the draw API when it is stale
  2. Display the last 10 draws
  3. Show the jackpot, last winning numbers and closest past matches
  4. Recommend 5 sets of numbers based on statistics
"""
import argparse
import json
import logging
import sys

import numpy as np

from cash5 import analysis, scraper, store
from cash5.config import LOTTERY_WARNING, PROGRAM_NAME, PROGRAM_VERSION, TOTAL_COMBINATIONS
from cash5.draw import format_combo
from cash5.models import annealing, distance, monte_carlo
from cash5.odds import format_ev, format_probability, odds_table
from cash5.predictor import generate_recommendations

logger = logging.getLogger(__name__)

BANNER = "=" * 60


# ── Formatting ───────────────────────────────────────────────────────────

def format_currency(dollars):
    return f"${int(dollars):,}"


def _section(title):
    print(f"\n{title}:")


def print_draws(records, last=None):
    """Table of draws, oldest first. With *last*, only the newest ones."""
    if not records:
        print("No draws found")
        return
    records = store.merge([], records)
    if last is not None:
        records = records[-last:]
    print(f"  {'DATE':<12}  {'WINNING NUMBERS':<20}  {'5/5 PAYOUT':>15}")
    for record in records:
        if not record.is_valid:
            continue
        payout = format_currency(record.payout // 100)
        print(f"  {record.drawn_at:%Y-%m-%d}    {record.combo_key:<20}  {payout:>15}")


def report_fetch(result):
    window = scraper.format_window(result.date_from, result.date_to)
    print(f"{window:<33}  {result.new_count:7d}  {len(result.records):12d}")
    if result.partial:
        print(f"  Error fetching page {result.error.page}: {result.error}. "
              f"Saved {result.obtained} draws before stopping.")


# ── Commands ─────────────────────────────────────────────────────────────

def cmd_fetch_all(records, path):
    print("Fetching all historical draws...")
    print(f"{'PERIOD':<33}  {'DRAWS':>7}  {'GRAND TOTAL':>12}")
    for result in scraper.backfill_all(records, save_callback=store.save_callback(path)):
        report_fetch(result)
        records = result.records
        if result.new_count == 0:
            print("\nNo more historical data available.")
    print(f"\nFetch complete! Total draws in database: {len(records)}")
    return records


def cmd_debug(records, date_str):
    matches = store.find_by_date(records, date_str)
    if not matches:
        print(f"No draw found for date {date_str}")
        return
    for record in matches:
        print(f"Draw for {record.drawn_at:%Y-%m-%d}:")
        print(f"  ID: {record.id}")
        print(f"  Winning numbers: {list(record.winning_numbers)}"
              f"{'' if record.is_valid else '  (invalid, excluded from statistics)'}")
        print(f"  Estimated jackpot: {record.estimated_jackpot} (= {format_currency(record.estimated_jackpot // 100)})")
        print(f"  5/5 payout: {format_currency(record.payout // 100)}")
        print(f"  Prize tiers ({len(record.prize_tiers)}):")
        for tier in record.prize_tiers:
            print(f"    {tier.label or '(unnamed)'}: {tier.winners} winners, {tier.amount} cents")
        print("\nRaw:")
        print(json.dumps(record.to_dict(), indent=2))
        print("-" * 60)


def cmd_odds(max_combos, records):
    jackpot = 0
    newest = store.latest(records)
    if newest is not None and newest.estimated_jackpot > 0:
        jackpot = newest.estimated_jackpot // 100

    print(f"NJ Cash 5 Odds Table. Total possible combinations: {TOTAL_COMBINATIONS:,} (C(45,5))")
    if jackpot:
        print(f"Latest estimated jackpot: {format_currency(jackpot)}")
        print(f"{'COMBOS':<9}  {'COST':>5}    {'ODDS':<16}  {'PROBABILITY':<14}  {'EV':>6}")
    else:
        print(f"{'COMBOS':<9}  {'COST':>5}    {'ODDS':<16}  PROBABILITY")

    table = odds_table(max_combos, jackpot_dollars=jackpot)
    for row in table.itertuples(index=False):
        line = (f"{row.combos:6d}     {format_currency(row.cost):>5}    "
                f"1 in {row.one_in:<11,}  {format_probability(row.probability * 100):<14}")
        if jackpot:
            line += f"  {format_ev(row.ev):>6}"
        print(line)


def cmd_stats(records, rng):
    df = store.to_frame(records)
    try:
        results = analysis.get_full_analysis(df)
    except analysis.NoDataError:
        print("No draws found")
        return

    print(BANNER)
    print("NJ CASH 5 STATISTICS")
    print(BANNER)

    freq = results["frequency"]
    dates = df[df["valid"]]["date"]
    print(f"\nTotal drawings: {freq['total_draws']}")
    print(f"Earliest drawing: {dates.min():%Y-%m-%d}")
    print(f"Latest drawing: {dates.max():%Y-%m-%d}")

    payouts = results["payouts"]
    print(f"\nWinners (5/5 match): {payouts['winners']}")

    dup = results["duplicates"]
    _section("Duplicate combination check")
    if not dup["duplicates"]:
        print(f"  No duplicates found ({dup['unique']} unique combinations in {dup['draws']} draws)")
    else:
        print(f"  {len(dup['duplicates'])} duplicate combination(s) found")
        for item in dup["duplicates"]:
            print(f"    {item['combo']}: drawn on {', '.join(item['dates'])}")

    for label in ("biggest", "smallest"):
        prize = payouts[label]
        if prize:
            _section(f"{label.capitalize()} prize")
            print(f"  {format_currency(prize['payout'] // 100)} on {prize['date']} ({prize['combo']})")
    if payouts["avg_days_between"] is not None:
        _section("Jackpot win frequency")
        print(f"  Average days between: {payouts['avg_days_between']:.1f} days")
        print(f"  Longest streak: {payouts['longest_gap_days']} days")
        print(f"  Days since last win: {payouts['days_since_last_win']} days")

    _section("Most common by position")
    names = ["First", "Second", "Third", "Fourth", "Fifth"]
    for name, pos in zip(names, freq["positional"]):
        top = analysis.find_most_common(pos)
        print(f"  {name} position: {top.num:02d}  (appeared {top.count} times)")

    _section("Most frequently drawn (all positions)")
    for i, nc in enumerate(analysis.top_n(freq["overall"], 5), 1):
        print(f"  {i}. Number {nc.num:02d}:  {nc.count} times")
    _section("Least frequently drawn (all positions)")
    for i, nc in enumerate(analysis.bottom_n(freq["overall"], 5), 1):
        print(f"  {i}. Number {nc.num:02d}:  {nc.count} times")

    hot_cold = results["hot_cold"]
    _section("Hot numbers (last 30 days)")
    for i, nc in enumerate(hot_cold["hot_30"], 1):
        print(f"  {i}. Number {nc.num:02d}:  {nc.count} times")
    _section("Cold numbers (last 90 days)")
    for i, nc in enumerate(hot_cold["cold_90"], 1):
        print(f"  {i}. Number {nc.num:02d}:  {nc.count} times")

    _section("Most common number pairs")
    for i, ((a, b), count) in enumerate(results["pairs"]["top_pairs"], 1):
        print(f"  {i}. {a:02d}-{b:02d}:  {count} times")

    chi = results["uniformity"]
    _section("Chi-squared uniformity analysis")
    print(f"  Statistic: {chi['statistic']:.2f}  (df={chi['dof']}, p={chi['p_value']:.4f})")
    print(f"  Critical values: {chi['critical_05']} (p=0.05), {chi['critical_01']} (p=0.01)")
    print(f"  Result: {chi['status']}")

    _section("Position-specific uniformity tests")
    positional = results["positional_uniformity"]
    for name, test in zip(names, positional["positions"]):
        print(f"  {name} position: chi2={test['statistic']:.2f}  {test['status']}")
    print("  Overall: " + ("all positions show uniform distribution" if positional["all_uniform"]
                           else "some positions show non-uniform distribution"))

    _section("Year-by-year analysis")
    for year in results["yearly_uniformity"]:
        print(f"  {year['year']}: chi2={year['statistic']:.2f}  {year['draws']} draws  "
              f"{year['status']}  (critical {year['critical_05']})")

    seq = results["sequential_pairs"]
    _section("Sequential pair uniformity")
    print(f"  Consecutive pairs found: {seq['consecutive_pairs']}/{seq['total_pairs']} "
          f"({seq['rate'] * 100:.2f}%)")
    print(f"  Expected rate: {seq['expected_rate'] * 100:.2f}%")
    print(f"  Assessment: {'within' if seq['within_expected'] else 'outside'} expected range "
          f"({seq['deviation_pct']:.1f}% deviation)")

    lh = results["low_high"]
    _section("Low vs high number distribution")
    print(f"  Low numbers (1-22): {lh['low']}  (expected: {lh['expected_low']:.0f})")
    print(f"  High numbers (23-45): {lh['high']}  (expected: {lh['expected_high']:.0f})")
    print(f"  Statistic: {lh['statistic']:.2f}  (df=1, critical={lh['critical_05']} at p=0.05)")
    print(f"  Result: {'balanced' if lh['uniform'] else 'imbalanced'} distribution")

    _section("Analysis summary")
    if results["issues_found"] == 0:
        print("  All tests passed - lottery appears statistically fair")
    else:
        print(f"  {results['issues_found']} potential issues detected - review individual tests")

    repeat = monte_carlo.predict(df)
    _section("Repeat probability")
    print(f"  Historical combinations: {repeat['historical_combinations']} unique sets")
    print(f"  Total possible combos: {repeat['total_combinations']:,}")
    print(f"  Coverage: {repeat['coverage'] * 100:.4f}%")
    for horizon, prob in repeat["probabilities"].items():
        print(f"    In {monte_carlo.HORIZON_LABELS[horizon]}: {prob * 100:.2f}%")

    baseline = distance.predict(df, rng=rng)
    stats = baseline["statistics"]
    _section("Combinatorial distance scoring")
    print("  Metric: Hamming distance (numbers not shared), reported as numbers different")
    print(f"  Historical combinations analyzed: {baseline['history_size']}")
    print(f"  Random combinations ({stats['samples']:,} samples):")
    print(f"    Average min distance: {distance.numbers_different(stats['avg_min_distance']):.2f} numbers different")
    print(f"    Average mean distance: {distance.numbers_different(stats['avg_mean_distance']):.2f} numbers different")
    print(f"    Best min distance found: {distance.numbers_different(stats['best_min_distance']):.0f} numbers different")
    print(f"  Random search best: {format_combo(baseline['top_numbers'])}  "
          f"({distance.numbers_different(baseline['score']):.0f} numbers different, "
          f"{baseline['iterations']:,} samples)")
    print("  Distance examples (from max-distance combo):")
    for example in distance.distance_examples(df, baseline["top_numbers"]):
        print(f"    vs {example['date']} draw {format_combo(example['numbers'])}: "
              f"{distance.numbers_different(example['distance']):.0f}/5 numbers different")

    search = annealing.predict(df, rng=rng)
    result = search["result"]
    _section("Simulated annealing search")
    print(f"  Iterations: {search['iterations']:,}  initial temperature: {search['initial_temp']}  "
          f"cooling rate: {search['cooling_rate']}")
    print(f"  Starting score: {result.initial_score}")
    print(f"  Final score: {result.final_score}")
    print(f"  Best score found: {result.best_score}  (+{result.improvement})")
    print(f"  Accepted moves: {result.accepted_moves}/{result.total_moves} "
          f"({result.acceptance_rate * 100:.1f}%)")
    print(f"  Optimal combination: {format_combo(result.best_combo)}  "
          f"(at least {distance.numbers_different(result.best_score):.0f}/5 numbers differ "
          f"from every historical draw)")

    _section("Method comparison")
    if result.best_score > baseline["score"]:
        print("  Winner: simulated annealing")
    elif result.best_score < baseline["score"]:
        print("  Winner: random search")
    else:
        print("  Tie (both found same score)")
    print(BANNER)


def cmd_daily(records, path, rng):
    if not records:
        print("Empty local archive. Fetching last 365 drawings...")
    records, results = scraper.sync(records, save_callback=store.save_callback(path))
    for result in results:
        if result.partial:
            print(f"Fetch stopped early: {result.error}. Saved {result.obtained} draws.")
        elif result.new_count:
            print(f"Fetched {result.new_count} new draws. Total in database: {len(result.records)}")

    print_draws(records, last=10)

    df = store.to_frame(records)
    try:
        repeat = analysis.repeat_check(df)
    except analysis.NoDataError:
        if records:
            print("No valid draws found")
        return

    newest = store.latest(records)
    if newest.estimated_jackpot > 0:
        print(f"\n  ESTIMATED JACKPOT: {format_currency(newest.estimated_jackpot // 100)}")

    status = ("REPEATED: " + ", ".join(repeat["prior_dates"])) if repeat["repeated"] else "Never repeated"
    print(f"  LAST WINNING NUMBERS: {format_combo(repeat['combo'])}  {status}")

    print("  CLOSEST 5 PREVIOUS WINNING MATCHES:")
    matches = analysis.closest_matches(df, repeat["combo"], exclude_date=repeat["date"])
    if not matches:
        print("    No previous draws with 3+ matching numbers")
    for m in matches:
        print(f"    {format_combo(m['numbers'])}  {m['date']}  ({m['matches']}/5 match)")

    print("  RECOMMENDATION:")
    for rec in generate_recommendations(df, rng=rng):
        print(f"    {rec['combo']}  {rec['strategy']}")

    print(f"\n  {LOTTERY_WARNING}")


# ── Entry point ──────────────────────────────────────────────────────────

def build_parser():
    parser = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        description="NJ Cash 5 daily numbers recommender",
        epilog=LOTTERY_WARNING,
    )
    parser.add_argument("-f", "--fetch-all", action="store_true",
                        help="fetch historical draws year by year until none are left")
    parser.add_argument("-a", "--all", action="store_true", help="display all previous drawings")
    parser.add_argument("-s", "--stats", action="store_true",
                        help="show statistics about historical data")
    parser.add_argument("-o", "--odds", type=int, nargs="?", const=30, metavar="N",
                        help="show odds table for 1 to N combos played (default: 30)")
    parser.add_argument("-d", "--debug", metavar="DATE", help="show raw JSON for draws on DATE (YYYY-MM-DD)")
    parser.add_argument("--archive", metavar="PATH", help="archive file (default: ~/.config/cash5/draws.json)")
    parser.add_argument("--seed", type=int, help="seed for reproducible searches")
    parser.add_argument("--verbose", action="store_true", help="log progress")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s v{PROGRAM_VERSION}")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    rng = np.random.default_rng(args.seed)
    path = args.archive

    try:
        records = store.load(path)
        if args.odds is not None:
            cmd_odds(args.odds, records)
        elif args.debug:
            cmd_debug(records, args.debug)
        elif args.fetch_all:
            cmd_fetch_all(records, path)
        elif args.all:
            print_draws(records)
        elif args.stats:
            cmd_stats(records, rng)
        else:
            cmd_daily(records, path, rng)
    except (store.ArchiveError, scraper.FetchError, ValueError) as e:
        logger.debug("Fatal error", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
