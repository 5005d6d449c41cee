"""
Cash 5 draw archive.

The archive is a JSON array of draw objects kept at a per-user path
(see cash5.config.archive_path). It is the single source of truth every
analysis reads from. Writes replace the whole file atomically.
"""
import json
import logging
import os
import tempfile

import pandas as pd

from cash5.config import NUMBERS_PER_DRAW, TIMEZONE, archive_path
from cash5.draw import DrawRecord, validate_numbers

logger = logging.getLogger(__name__)

NUM_COLS = [f"num{i}" for i in range(1, NUMBERS_PER_DRAW + 1)]


class ArchiveError(Exception):
    """The archive file could not be read or written."""


# ---------------------------------------------------------------------------
# Load / merge / persist
# ---------------------------------------------------------------------------

def merge(existing, incoming):
    """
    Merge two record batches.

    Records are deduplicated by id with the incoming copy winning, and the
    result is sorted ascending by draw time. A manual payout correction on
    the existing copy survives when the incoming copy carries none.
    """
    by_id = {}
    for record in existing:
        by_id[record.id] = record
    for record in incoming:
        previous = by_id.get(record.id)
        if previous is not None and previous.actual_payout and not record.actual_payout:
            record = record.with_payout(previous.actual_payout)
        by_id[record.id] = record
    return sorted(by_id.values(), key=lambda r: r.draw_time)


def load(path=None):
    """Load the archive. A missing file is an empty archive, not an error."""
    path = path or archive_path()
    try:
        with open(path, encoding="utf-8") as fh:
            payload = json.load(fh)
    except FileNotFoundError:
        logger.debug("No archive at %s, starting empty", path)
        return []
    except (OSError, ValueError) as e:
        raise ArchiveError(f"cannot read archive {path}: {e}") from e

    if not isinstance(payload, list):
        raise ArchiveError(f"archive {path} is not a JSON array")

    try:
        records = [DrawRecord.from_dict(item) for item in payload]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ArchiveError(f"malformed draw in archive {path}: {e}") from e
    records = merge([], records)
    logger.debug("Loaded %d draws from %s", len(records), path)
    return records


def persist(records, path=None):
    """
    Write the full archive atomically.

    The JSON goes to a temporary file in the target directory which then
    replaces the archive, so an interrupted write leaves the previous
    archive intact.
    """
    path = path or archive_path()
    directory = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".draws-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump([r.to_dict() for r in records], fh, indent=2)
                fh.write("\n")
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    except OSError as e:
        raise ArchiveError(f"cannot write archive {path}: {e}") from e
    logger.debug("Persisted %d draws to %s", len(records), path)


def save_callback(path=None):
    """Return a callable that persists a record list to *path*."""
    def _save(records):
        persist(records, path)
    return _save


# ---------------------------------------------------------------------------
# Lookups and corrections
# ---------------------------------------------------------------------------

def latest(records):
    return max(records, key=lambda r: r.draw_time) if records else None


def oldest(records):
    return min(records, key=lambda r: r.draw_time) if records else None


def find_by_date(records, date_str):
    """All records drawn on *date_str* (YYYY-MM-DD, draw timezone)."""
    target = pd.Timestamp(date_str).date()
    return [r for r in records if r.drawn_at.date() == target]


def correct_payout(records, draw_id, cents):
    """Return a copy of *records* with one draw's actual payout replaced."""
    out = []
    found = False
    for record in records:
        if record.id == draw_id:
            record = record.with_payout(cents)
            found = True
        out.append(record)
    if not found:
        raise KeyError(draw_id)
    return out


# ---------------------------------------------------------------------------
# DataFrame view for analysis
# ---------------------------------------------------------------------------

def to_frame(records) -> pd.DataFrame:
    """
    Tabulate records for analysis, one row per draw.

    Columns: id, draw_time, date, year, num1-num5 (sorted ascending),
    payout, estimated_jackpot, valid. Invalid draws get zeros in the number
    columns and valid=False; they are logged and left for callers to drop.
    """
    rows = []
    for record in merge([], records):
        reason = validate_numbers(record.winning_numbers)
        if reason:
            logger.warning("Skipping draw %s in numeric analysis: %s", record.id, reason)
            nums = [0] * NUMBERS_PER_DRAW
        else:
            nums = record.sorted_numbers
        row = {
            "id": record.id,
            "draw_time": record.draw_time,
            "payout": record.payout,
            "estimated_jackpot": record.estimated_jackpot,
            "valid": not reason,
        }
        row.update(zip(NUM_COLS, nums))
        rows.append(row)

    columns = ["id", "draw_time", *NUM_COLS, "payout", "estimated_jackpot", "valid"]
    df = pd.DataFrame(rows, columns=columns)
    df["draw_time"] = df["draw_time"].astype("int64")
    df["valid"] = df["valid"].astype(bool)
    df["date"] = pd.to_datetime(df["draw_time"], unit="ms", utc=True).dt.tz_convert(TIMEZONE)
    df["year"] = df["date"].dt.year
    df[NUM_COLS] = df[NUM_COLS].astype(int)
    df[["payout", "estimated_jackpot"]] = df[["payout", "estimated_jackpot"]].astype("int64")
    return df.reset_index(drop=True)
