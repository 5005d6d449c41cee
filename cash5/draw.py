"""
Cash 5 draw record model.

A DrawRecord is one closed draw as published by the NJ Lottery draw API:
the five winning numbers, the estimated jackpot and the prize tiers. Records
keep the JSON object they were parsed from so that writing them back never
drops fields the model does not know about.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from zoneinfo import ZoneInfo

from cash5.config import MAX_NUMBER, NUMBERS_PER_DRAW, TIMEZONE

JACKPOT_LABEL = "5/5"


@dataclass(frozen=True)
class PrizeTier:
    """One prize level of a draw. Amounts are in cents."""

    label: str
    winners: int = 0
    amount: int = 0

    @property
    def is_jackpot(self) -> bool:
        return self.label == JACKPOT_LABEL

    @classmethod
    def from_dict(cls, data: dict) -> "PrizeTier":
        is_jackpot = (
            str(data.get("tier", "")) == "1"
            or data.get("match") in ("5", JACKPOT_LABEL)
            or data.get("description") == JACKPOT_LABEL
            or data.get("name") == JACKPOT_LABEL
            or str(data.get("id", "")) == "1"
        )
        if is_jackpot:
            label = JACKPOT_LABEL
        else:
            label = str(
                data.get("name") or data.get("description")
                or data.get("match") or data.get("tier") or ""
            )
        winners = int(data.get("winners") or 0) or int(data.get("shareCount") or 0)
        amount = (
            int(data.get("shareAmount") or 0)
            or int(data.get("prizeAmount") or 0)
            or int(data.get("prize") or 0)
        )
        return cls(label=label, winners=winners, amount=amount)

    def to_dict(self) -> dict:
        out = {"name": self.label}
        if self.is_jackpot:
            out["match"] = JACKPOT_LABEL
        if self.winners:
            out["winners"] = self.winners
        if self.amount:
            out["prizeAmount"] = self.amount
        return out


def _is_empty_tier(data: dict) -> bool:
    return not (
        data.get("tier") or data.get("name")
        or int(data.get("winners") or 0) > 0
        or int(data.get("prizeAmount") or 0) > 0
        or int(data.get("shareCount") or 0) > 0
        or int(data.get("shareAmount") or 0) > 0
    )


def _parse_primary(results) -> tuple:
    """First five primary numbers of the first result block, or () if unusable."""
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        return ()
    primary = results[0].get("primary")
    if not isinstance(primary, list) or len(primary) < NUMBERS_PER_DRAW:
        return ()
    try:
        return tuple(int(str(n).strip()) for n in primary[:NUMBERS_PER_DRAW])
    except (TypeError, ValueError):
        return ()


def format_combo(numbers) -> str:
    """Render numbers as the zero-padded '01-02-03-04-05' form."""
    return "-".join(f"{n:02d}" for n in numbers)


def validate_numbers(numbers) -> str:
    """Return the reason *numbers* is not a valid draw, or an empty string."""
    if len(numbers) != NUMBERS_PER_DRAW:
        return f"expected {NUMBERS_PER_DRAW} winning numbers, got {len(numbers)}"
    if len(set(numbers)) != NUMBERS_PER_DRAW:
        return f"duplicate winning numbers {list(numbers)}"
    out_of_range = [n for n in numbers if not 1 <= n <= MAX_NUMBER]
    if out_of_range:
        return f"numbers out of range 1-{MAX_NUMBER}: {out_of_range}"
    return ""


@dataclass(frozen=True)
class DrawRecord:
    """
    One Cash 5 draw.

    Attributes
    ----------
    id : str
        Stable upstream identifier, the deduplication key.
    draw_time : int
        Draw time in epoch milliseconds, the ordering key.
    winning_numbers : tuple of int
        Numbers as published. Valid draws hold 5 distinct values in 1-45.
    estimated_jackpot, actual_payout : int
        Cents. actual_payout is a manual correction, 0 when unknown.
    prize_tiers : tuple of PrizeTier
    """

    id: str
    draw_time: int
    winning_numbers: tuple = ()
    estimated_jackpot: int = 0
    actual_payout: int = 0
    prize_tiers: tuple = ()
    game_name: str = ""
    status: str = ""
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_valid(self) -> bool:
        return not validate_numbers(self.winning_numbers)

    @property
    def sorted_numbers(self) -> list:
        return sorted(self.winning_numbers)

    @property
    def combo_key(self) -> str:
        return format_combo(self.sorted_numbers)

    @property
    def drawn_at(self) -> datetime:
        return datetime.fromtimestamp(self.draw_time / 1000, tz=ZoneInfo(TIMEZONE))

    @property
    def payout(self) -> int:
        """5/5 payout in cents: the manual correction first, then the jackpot tier."""
        if self.actual_payout > 0:
            return self.actual_payout
        for tier in self.prize_tiers:
            if tier.is_jackpot and tier.winners > 0 and tier.amount > 0:
                return tier.amount
        return 0

    def with_payout(self, cents: int) -> "DrawRecord":
        if cents < 0:
            raise ValueError("payout must be non-negative")
        return replace(self, actual_payout=int(cents))

    @classmethod
    def from_dict(cls, data: dict) -> "DrawRecord":
        raw = dict(data)
        tiers = data.get("prizeTiers")
        if not isinstance(tiers, list):
            tiers = []
        tiers = [t for t in tiers if isinstance(t, dict) and not _is_empty_tier(t)]
        if tiers:
            raw["prizeTiers"] = tiers
        else:
            raw.pop("prizeTiers", None)
        return cls(
            id=str(data.get("id", "")),
            draw_time=int(data.get("drawTime") or 0),
            winning_numbers=_parse_primary(data.get("results")),
            estimated_jackpot=int(data.get("estimatedJackpot") or 0),
            actual_payout=int(data.get("actualPayout") or 0),
            prize_tiers=tuple(PrizeTier.from_dict(t) for t in tiers),
            game_name=str(data.get("gameName", "")),
            status=str(data.get("status", "")),
            raw=raw,
        )

    def to_dict(self) -> dict:
        out = dict(self.raw)
        out["gameName"] = self.game_name
        out["id"] = self.id
        out["status"] = self.status
        out["drawTime"] = self.draw_time
        out["estimatedJackpot"] = self.estimated_jackpot
        if self.actual_payout:
            out["actualPayout"] = self.actual_payout
        else:
            out.pop("actualPayout", None)
        if "results" not in out:
            out["results"] = [{"primary": [str(n) for n in self.winning_numbers]}]
        if "prizeTiers" not in out and self.prize_tiers:
            out["prizeTiers"] = [t.to_dict() for t in self.prize_tiers]
        return out
