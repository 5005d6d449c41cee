import json

import numpy as np
import pandas as pd
import pytest
import requests

from cash5 import store
from cash5.draw import DrawRecord


def draw_time(day, hour=22, minute=57):
    """Epoch milliseconds for *day* at the evening draw, New York time."""
    ts = pd.Timestamp(day).tz_localize("America/New_York") + pd.Timedelta(hours=hour, minutes=minute)
    return int(ts.value // 1_000_000)


def make_draw(draw_id, day, numbers, winners=0, amount=0, estimated=0, **extra):
    data = {
        "id": str(draw_id),
        "gameName": "Cash 5",
        "status": "CLOSED",
        "drawTime": draw_time(day),
        "estimatedJackpot": estimated,
        "results": [{"primary": [str(n) for n in numbers]}],
    }
    if winners or amount:
        data["prizeTiers"] = [
            {"name": "5/5", "match": "5", "winners": winners, "prizeAmount": amount},
            {"name": "4/5", "winners": 12, "prizeAmount": 50000},
        ]
    data.update(extra)
    return DrawRecord.from_dict(data)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, bad_json=False):
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise json.JSONDecodeError("Expecting value", "<html>", 0)
        return self._payload


class FakeSession:
    """Serves queued responses in order and records the query parameters."""

    def __init__(self, responses=()):
        self.responses = list(responses)
        self.params = []
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None):
        self.params.append(dict(params))
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp

    def close(self):
        self.closed = True

    @property
    def pages(self):
        return [p["page"] for p in self.params]


def page_of(records):
    return FakeResponse(200, {"draws": [r.to_dict() for r in records]})


@pytest.fixture
def draw_factory():
    return make_draw


@pytest.fixture
def session_factory():
    return FakeSession


@pytest.fixture
def response_factory():
    return FakeResponse


@pytest.fixture
def page_factory():
    return page_of


@pytest.fixture
def timeout_error():
    return requests.Timeout("read timed out")


@pytest.fixture
def sample_records():
    """120 valid draws, one a day from 2024-01-01, plus one malformed draw."""
    rng = np.random.default_rng(7)
    days = pd.date_range("2024-01-01", periods=120, freq="D")
    records = []
    for i, day in enumerate(days):
        numbers = sorted(int(n) for n in rng.choice(45, size=5, replace=False) + 1)
        winners = 1 if i in (10, 50, 90) else 0
        records.append(make_draw(1000 + i, day.strftime("%Y-%m-%d"), numbers,
                                 winners=winners, amount=(i + 1) * 100_000 if winners else 0,
                                 estimated=(i + 1) * 1_000_000))
    records.append(make_draw("broken", "2024-02-15", [1, 2, 3]))
    return records


@pytest.fixture
def sample_frame(sample_records):
    return store.to_frame(sample_records)
