import pandas as pd
import pytest

from cash5 import scraper, store


@pytest.fixture
def draws(draw_factory):
    return [draw_factory(f"p{i}", f"2024-04-{i + 1:02d}", [i + 1, i + 2, i + 3, i + 4, i + 5])
            for i in range(10)]


def _fetch(session, **kwargs):
    kwargs.setdefault("date_from", 0)
    kwargs.setdefault("date_to", 1)
    kwargs.setdefault("sleep", lambda s: None)
    return scraper.fetch_range(session=session, **kwargs)


def test_permanent_error_after_two_pages_returns_partial(draws, session_factory, page_factory,
                                                         response_factory):
    session = session_factory([
        page_factory(draws[0:2]),
        page_factory(draws[2:4]),
        response_factory(400),
        page_factory(draws[4:6]),
        page_factory(draws[6:8]),
    ])
    saved = []

    result = _fetch(session, page_size=2, max_records=0, save_callback=saved.append)

    assert session.pages == [0, 1, 2]
    assert result.partial and not result.ok
    assert isinstance(result.error, scraper.PermanentFetchError)
    assert result.error.page == 2
    assert result.obtained == 4
    assert [r.id for r in result.records] == ["p0", "p1", "p2", "p3"]
    assert len(saved) == 2
    assert [r.id for r in saved[-1]] == ["p0", "p1", "p2", "p3"]


def test_server_errors_are_retried(draws, session_factory, page_factory, response_factory):
    session = session_factory([response_factory(500), response_factory(503), page_factory(draws[:1])])
    sleeps = []

    result = _fetch(session, retry_delay=2.0, sleep=sleeps.append)

    assert result.ok
    assert result.obtained == 1
    assert session.pages == [0, 0, 0]
    assert sleeps == [2.0, 2.0]


def test_timeouts_are_retried(draws, session_factory, page_factory, timeout_error):
    session = session_factory([timeout_error, page_factory(draws[:1])])

    result = _fetch(session)

    assert result.obtained == 1


def test_client_error_is_not_retried(session_factory, response_factory):
    session = session_factory([response_factory(404), response_factory(200, {"draws": []})])

    with pytest.raises(scraper.PermanentFetchError) as excinfo:
        _fetch(session)

    assert excinfo.value.status == 404
    assert session.pages == [0]


def test_exhausted_retries_without_records_raise(session_factory, response_factory):
    session = session_factory([response_factory(502) for _ in range(5)])
    sleeps = []

    with pytest.raises(scraper.RetryableFetchError):
        _fetch(session, max_attempts=5, sleep=sleeps.append)

    assert len(session.pages) == 5
    assert len(sleeps) == 4


def test_exhausted_retries_after_records_are_partial(draws, session_factory, page_factory,
                                                     response_factory):
    session = session_factory([page_factory(draws[:2]), response_factory(500), response_factory(500)])

    result = _fetch(session, page_size=2, max_attempts=2)

    assert result.partial
    assert isinstance(result.error, scraper.RetryableFetchError)
    assert result.obtained == 2


def test_malformed_json_is_permanent(session_factory, response_factory):
    session = session_factory([response_factory(200, bad_json=True)])

    with pytest.raises(scraper.PermanentFetchError):
        _fetch(session)


def test_missing_draws_array_is_permanent(session_factory, response_factory):
    session = session_factory([response_factory(200, {"items": []})])

    with pytest.raises(scraper.PermanentFetchError):
        _fetch(session)


def test_short_page_ends_window(draws, session_factory, page_factory):
    session = session_factory([page_factory(draws[:2])])

    result = _fetch(session, page_size=3)

    assert session.pages == [0]
    assert result.pages == 1


def test_empty_page_ends_window(draws, session_factory, page_factory):
    session = session_factory([page_factory(draws[:2]), page_factory([])])

    result = _fetch(session, page_size=2, max_records=0)

    assert session.pages == [0, 1]
    assert result.pages == 1
    assert result.ok


def test_max_records_limit(draws, session_factory, page_factory):
    session = session_factory([page_factory(draws[0:2]), page_factory(draws[2:4])])

    result = _fetch(session, page_size=2, max_records=3)

    assert session.pages == [0, 1]
    assert result.obtained == 4


def test_failing_save_does_not_stop_fetch(draws, session_factory, page_factory):
    session = session_factory([page_factory(draws[0:2]), page_factory(draws[2:3])])

    def broken_save(records):
        raise store.ArchiveError("disk full")

    result = _fetch(session, page_size=2, save_callback=broken_save)

    assert result.obtained == 3


def test_fetch_merges_into_existing(draws, session_factory, page_factory):
    session = session_factory([page_factory(draws[1:3])])

    result = _fetch(session, existing=draws[:2])

    assert [r.id for r in result.records] == ["p0", "p1", "p2"]
    assert result.new_count == 1
    assert not session.closed


def test_query_parameters(session_factory, page_factory):
    session = session_factory([page_factory([])])

    _fetch(session, date_from=1_000, date_to=2_000, page_size=50)

    params = session.params[0]
    assert params["game-names"] == "Cash 5"
    assert params["status"] == "CLOSED"
    assert params["size"] == 50
    assert (params["date-from"], params["date-to"]) == (1_000, 2_000)


def test_backfill_window_ends_before_oldest(draws, session_factory, page_factory):
    session = session_factory([page_factory([])])
    oldest = draws[0].draw_time

    scraper.backfill(draws, session=session)

    params = session.params[0]
    assert params["date-to"] == oldest - 1
    days = (params["date-to"] - params["date-from"]) / 86_400_000
    assert 365 <= days <= 366


def test_backfill_empty_archive_ends_now(session_factory, page_factory):
    session = session_factory([page_factory([])])
    now = pd.Timestamp("2024-06-01 12:00", tz="America/New_York")

    scraper.backfill([], now=now, session=session)

    assert session.params[0]["date-to"] == int(now.value // 1_000_000)


def test_backfill_all_stops_when_nothing_new(draw_factory, draws, session_factory, page_factory):
    older = draw_factory("old", "2023-11-01", [2, 4, 6, 8, 10])
    session = session_factory([page_factory([older]), page_factory([])])

    results = list(scraper.backfill_all(draws, session=session))

    assert [r.new_count for r in results] == [1, 0]
    assert results[-1].records[0].id == "old"


def test_backfill_all_stops_on_partial_pass(draw_factory, draws, session_factory, page_factory,
                                            response_factory):
    older = [draw_factory(f"o{i}", f"2023-11-0{i + 1}", [1, 2, 3, 4, 5 + i]) for i in range(2)]
    session = session_factory([page_factory(older), response_factory(404)])

    results = list(scraper.backfill_all(draws, session=session, page_size=2, max_records=0))

    assert len(results) == 1
    assert results[0].partial


def test_sync_skips_fetch_when_current(draw_factory, session_factory):
    session = session_factory()
    recent = [draw_factory("r1", "2024-06-01", [1, 2, 3, 4, 5])]

    records, results = scraper.sync(recent, now="2024-06-02 09:00", session=session)

    assert results == []
    assert records == recent
    assert session.params == []


def test_sync_tops_up_recent_archive(draw_factory, session_factory, page_factory):
    recent = [draw_factory("r1", "2024-05-29", [1, 2, 3, 4, 5])]
    newer = draw_factory("r2", "2024-05-31", [6, 7, 8, 9, 10])
    session = session_factory([page_factory([newer])])

    records, results = scraper.sync(recent, now="2024-06-02 09:00", session=session)

    assert [r.id for r in records] == ["r1", "r2"]
    assert len(results) == 1
    assert session.params[0]["date-from"] == recent[0].draw_time + 1


def test_sync_backfills_stale_archive(draw_factory, session_factory, page_factory):
    stale = [draw_factory("s1", "2024-04-01", [1, 2, 3, 4, 5])]
    newer = draw_factory("s2", "2024-05-31", [6, 7, 8, 9, 10])
    session = session_factory([page_factory([]), page_factory([newer])])

    records, results = scraper.sync(stale, now="2024-06-02 09:00", session=session)

    assert len(results) == 2
    assert [r.id for r in records] == ["s1", "s2"]


def test_sync_keeps_archive_when_top_up_fails(draw_factory, session_factory, response_factory):
    recent = [draw_factory("r1", "2024-05-29", [1, 2, 3, 4, 5])]
    session = session_factory([response_factory(500)])

    records, results = scraper.sync(recent, now="2024-06-02 09:00", session=session,
                                    max_attempts=1, sleep=lambda s: None)

    assert records == recent
    assert results == []


def test_malformed_results_on_later_page_are_kept(draws, session_factory, page_factory,
                                                  response_factory):
    odd = dict(draws[2].to_dict(), results={"a": 1})
    session = session_factory([
        page_factory(draws[0:2]),
        response_factory(200, {"draws": [odd, draws[3].to_dict()]}),
        page_factory([]),
    ])

    result = _fetch(session, page_size=2, max_records=0)

    assert result.ok
    assert result.obtained == 4
    assert [r.id for r in result.records] == ["p0", "p1", "p2", "p3"]
    assert not result.records[2].is_valid
