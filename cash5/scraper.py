"""
NJ Cash 5 draw fetcher.

Pages through the NJ Lottery draw API for a date window, retrying server-side
failures, and hands the merged archive to a save callback after every page so
that a long backfill survives a failure on a later page.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd
import requests

from cash5 import store
from cash5.config import (
    API_URL,
    DRAW_STATUS,
    GAME_NAME,
    MAX_ATTEMPTS,
    MAX_RECORDS,
    PAGE_SIZE,
    REQUEST_HEADERS,
    REQUEST_TIMEOUT,
    RETRY_DELAY,
    STALE_AFTER_DAYS,
    TIMEZONE,
)
from cash5.draw import DrawRecord

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A page of draws could not be fetched."""

    def __init__(self, message, page=None, status=None):
        super().__init__(message)
        self.page = page
        self.status = status


class RetryableFetchError(FetchError):
    """Server-side or transport failure (5xx, timeout, dropped connection)."""


class PermanentFetchError(FetchError):
    """Failure that retrying cannot fix (4xx, malformed JSON)."""


@dataclass
class FetchResult:
    """
    Outcome of fetching one date window.

    records holds the merged archive (existing plus everything fetched).
    error is set when the window stopped early on a failure after at least
    one page succeeded; those pages are already in records and were saved.
    """

    records: List[DrawRecord]
    obtained: int = 0
    pages: int = 0
    error: Optional[FetchError] = None
    date_from: int = 0
    date_to: int = 0
    before: int = field(default=0, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def partial(self) -> bool:
        return self.error is not None and self.obtained > 0

    @property
    def new_count(self) -> int:
        return len(self.records) - self.before


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _to_millis(value) -> int:
    """Epoch milliseconds from an int, datetime or Timestamp (naive means UTC)."""
    if isinstance(value, int):
        return value
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return int(ts.value // 1_000_000)


def _from_millis(ms: int) -> pd.Timestamp:
    return pd.Timestamp(ms, unit="ms", tz="UTC").tz_convert(TIMEZONE)


def _now(now=None) -> pd.Timestamp:
    if now is None:
        return pd.Timestamp.now(tz=TIMEZONE)
    ts = pd.Timestamp(now)
    return ts.tz_localize(TIMEZONE) if ts.tzinfo is None else ts.tz_convert(TIMEZONE)


def format_window(date_from, date_to) -> str:
    return (f"{_from_millis(_to_millis(date_from)):%Y-%m-%d} -> "
            f"{_from_millis(_to_millis(date_to)):%Y-%m-%d}")


# ---------------------------------------------------------------------------
# Single page
# ---------------------------------------------------------------------------

def fetch_page(page, size, date_from, date_to, session=None, timeout=REQUEST_TIMEOUT):
    """
    Fetch one page of closed Cash 5 draws.

    Raises
    ------
    RetryableFetchError
        HTTP 5xx, timeouts and connection failures.
    PermanentFetchError
        Any other non-200 status, or a body that is not a draws envelope.
    """
    params = {
        "game-names": GAME_NAME,
        "status": DRAW_STATUS,
        "size": size,
        "page": page,
        "date-from": _to_millis(date_from),
        "date-to": _to_millis(date_to),
    }
    http = session if session is not None else requests
    try:
        resp = http.get(API_URL, params=params, headers=REQUEST_HEADERS, timeout=timeout)
    except (requests.Timeout, requests.ConnectionError) as e:
        raise RetryableFetchError(f"page {page}: {e}", page=page) from e
    except requests.RequestException as e:
        raise PermanentFetchError(f"page {page}: {e}", page=page) from e

    if resp.status_code >= 500:
        raise RetryableFetchError(
            f"page {page}: server error {resp.status_code}", page=page, status=resp.status_code
        )
    if resp.status_code != 200:
        raise PermanentFetchError(
            f"page {page}: bad status {resp.status_code}", page=page, status=resp.status_code
        )

    try:
        payload = resp.json()
    except ValueError as e:
        raise PermanentFetchError(f"page {page}: malformed JSON: {e}", page=page) from e
    draws = payload.get("draws") if isinstance(payload, dict) else None
    if not isinstance(draws, list):
        raise PermanentFetchError(f"page {page}: response has no draws array", page=page)

    try:
        return [DrawRecord.from_dict(d) for d in draws]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise PermanentFetchError(f"page {page}: malformed draw: {e}", page=page) from e


def _fetch_with_retry(page, size, date_from, date_to, session, max_attempts, retry_delay, sleep):
    last_error = None
    for attempt in range(1, max_attempts + 1):
        try:
            return fetch_page(page, size, date_from, date_to, session=session)
        except RetryableFetchError as e:
            last_error = e
            logger.warning("Server error on page %d, retry %d/%d: %s", page, attempt, max_attempts, e)
            if attempt < max_attempts:
                sleep(retry_delay)
    raise last_error


# ---------------------------------------------------------------------------
# Date window
# ---------------------------------------------------------------------------

def fetch_range(date_from, date_to, existing=(), save_callback=None, page_size=PAGE_SIZE,
                max_records=MAX_RECORDS, max_attempts=MAX_ATTEMPTS, retry_delay=RETRY_DELAY,
                session=None, sleep=time.sleep):
    """
    Page through [date_from, date_to] and merge everything into *existing*.

    Stops on an empty page, a short page (fewer than page_size draws) or
    once max_records draws were obtained. After each non-empty page the
    merged archive is passed to save_callback; a failing save is logged and
    fetching continues.

    A page failure (permanent at once, retryable after max_attempts) ends
    the window. With at least one page already obtained the partial
    FetchResult is returned with its error set; otherwise the error is
    raised.
    """
    from_ms, to_ms = _to_millis(date_from), _to_millis(date_to)
    records = store.merge([], existing)
    result = FetchResult(records=records, date_from=from_ms, date_to=to_ms, before=len(records))

    own_session = session is None
    if own_session:
        session = requests.Session()
    try:
        page = 0
        while True:
            try:
                draws = _fetch_with_retry(page, page_size, from_ms, to_ms, session,
                                          max_attempts, retry_delay, sleep)
            except FetchError as e:
                if result.obtained > 0:
                    logger.warning("Page %d failed (%s). Saved %d draws before stopping.",
                                   page, e, result.obtained)
                    result.error = e
                    return result
                raise

            if not draws:
                break

            result.records = store.merge(result.records, draws)
            result.obtained += len(draws)
            result.pages += 1
            logger.debug("Page %d: %d draws (%d so far)", page, len(draws), result.obtained)

            if save_callback is not None:
                try:
                    save_callback(result.records)
                except (store.ArchiveError, OSError) as e:
                    logger.warning("Failed to save after page %d: %s", page, e)

            if len(draws) < page_size:
                break
            if max_records and result.obtained >= max_records:
                logger.info("Reached %d draws limit, stopping fetch", max_records)
                break
            page += 1
    finally:
        if own_session:
            session.close()

    return result


def backfill(existing, now=None, **kwargs):
    """
    Fetch the year before the oldest archived draw.

    With an empty archive the window is the year up to now. Repeated calls
    walk backwards through history.
    """
    oldest = store.oldest(existing)
    if oldest is None:
        date_to = _now(now)
        date_from = date_to - pd.DateOffset(years=1)
    else:
        date_to = _from_millis(oldest.draw_time - 1)
        date_from = date_to - pd.DateOffset(years=1)
    logger.info("Backfilling %s", format_window(date_from, date_to))
    return fetch_range(date_from, date_to, existing, **kwargs)


def top_up(existing, now=None, **kwargs):
    """Fetch only draws newer than the newest archived draw."""
    newest = store.latest(existing)
    if newest is None:
        return backfill(existing, now=now, **kwargs)
    from_ms = newest.draw_time + 1
    to_ms = _to_millis(_now(now))
    if from_ms > to_ms:
        records = store.merge([], existing)
        return FetchResult(records=records, date_from=from_ms, date_to=to_ms, before=len(records))
    logger.info("Topping up %s", format_window(from_ms, to_ms))
    return fetch_range(from_ms, to_ms, existing, **kwargs)


def backfill_all(existing, now=None, **kwargs):
    """
    Yield one FetchResult per backfill pass until a pass adds nothing.

    A partial pass is yielded and ends the loop, so the next run resumes
    from the new oldest draw instead of skipping the failed window.
    """
    records = store.merge([], existing)
    while True:
        result = backfill(records, now=now, **kwargs)
        yield result
        records = result.records
        if result.new_count == 0 or not result.ok:
            break


def sync(existing, now=None, **kwargs):
    """
    Bring the archive current for a daily run.

    Backfills once when the archive is empty or its newest draw is more
    than STALE_AFTER_DAYS old, then tops up when the newest draw is before
    yesterday. A failed top-up is logged and the archive kept as is.

    Returns
    -------
    (records, results) : the merged archive and the FetchResults produced.
    """
    now_ts = _now(now)
    records = store.merge([], existing)
    results = []

    newest = store.latest(records)
    if newest is None or _from_millis(newest.draw_time) < now_ts - pd.Timedelta(days=STALE_AFTER_DAYS):
        result = backfill(records, now=now_ts, **kwargs)
        results.append(result)
        records = result.records

    newest = store.latest(records)
    yesterday = now_ts.normalize() - pd.Timedelta(days=1)
    if newest is not None and _from_millis(newest.draw_time) < yesterday:
        try:
            result = top_up(records, now=now_ts, **kwargs)
        except FetchError as e:
            logger.warning("Failed to fetch recent draws: %s", e)
        else:
            results.append(result)
            records = result.records

    return records, results
