"""Sales and prize aggregation over the bet-item ledger."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from .models import PRIZE_STATUSES, ZERO, BetItem, ItemStatus, LotteryFamily, as_decimal
from .windows import Period, TimeWindow
from .winners import combination_key, normalize_two_digit

LEDGER_OK = "ok"
LEDGER_FAILED = "failed"


@dataclass(slots=True)
class ResellerTotals:
    reseller_id: str
    sales: Decimal = ZERO
    prizes: Decimal = ZERO
    bets_count: int = 0
    winners_count: int = 0


@dataclass(slots=True, frozen=True)
class HourBucket:
    hour: int
    bets: int
    sales: Decimal

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:00"


@dataclass(slots=True, frozen=True)
class LotteryCount:
    lottery_id: str
    lottery_name: str
    count: int
    amount: Decimal


@dataclass(slots=True, frozen=True)
class NumberRanking:
    number: str
    name: str
    times_played: int
    total_amount: Decimal
    total_potential_win: Decimal
    lotteries: tuple[LotteryCount, ...] = ()

    @property
    def average_amount(self) -> Decimal:
        return self.total_amount / self.times_played if self.times_played else ZERO


@dataclass(slots=True)
class LedgerSummary:
    window: TimeWindow
    family: LotteryFamily | None = None
    by_reseller: dict[str, ResellerTotals] = field(default_factory=dict)
    hourly: list[HourBucket] = field(default_factory=list)
    status: str = LEDGER_OK
    error: str | None = None

    @classmethod
    def failed(cls, window: TimeWindow, family: LotteryFamily | None, error: str) -> "LedgerSummary":
        return cls(window=window, family=family, status=LEDGER_FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.status == LEDGER_OK

    @property
    def total_sales(self) -> Decimal:
        return sum((totals.sales for totals in self.by_reseller.values()), ZERO)

    @property
    def total_prizes(self) -> Decimal:
        return sum((totals.prizes for totals in self.by_reseller.values()), ZERO)

    @property
    def bets_count(self) -> int:
        return sum(totals.bets_count for totals in self.by_reseller.values())

    @property
    def winners_count(self) -> int:
        return sum(totals.winners_count for totals in self.by_reseller.values())

    def totals_for(self, reseller_id: str) -> ResellerTotals:
        return self.by_reseller.get(reseller_id) or ResellerTotals(reseller_id=reseller_id)


def select_items(
    items: Iterable[BetItem],
    window: TimeWindow,
    *,
    visible_reseller_ids: Sequence[str] | None = None,
    family: LotteryFamily | None = None,
) -> list[BetItem]:
    """Items inside the window, scoped to visible resellers, in a stable order.

    ``visible_reseller_ids=None`` means no reseller filter; an empty sequence
    means the caller can see no reseller at all.
    """
    if visible_reseller_ids is not None and not visible_reseller_ids:
        return []
    visible = set(visible_reseller_ids) if visible_reseller_ids is not None else None

    selected = [
        item
        for item in items
        if item.created_at is not None
        and window.contains(item.created_at)
        and (visible is None or item.reseller_id in visible)
        and (family is None or item.family == family)
    ]
    return sorted(selected, key=lambda item: (item.created_at, item.id))


def aggregate_ledger(
    items: Iterable[BetItem],
    window: TimeWindow,
    *,
    visible_reseller_ids: Sequence[str] | None = None,
    family: LotteryFamily | None = None,
) -> LedgerSummary:
    summary = LedgerSummary(window=window, family=family)
    if visible_reseller_ids is not None and not visible_reseller_ids:
        return summary

    selected = select_items(items, window, visible_reseller_ids=visible_reseller_ids, family=family)
    for item in selected:
        totals = summary.by_reseller.setdefault(item.reseller_id, ResellerTotals(reseller_id=item.reseller_id))
        if item.status != ItemStatus.CANCELLED:
            totals.sales += as_decimal(item.amount)
            totals.bets_count += 1
        if item.status in PRIZE_STATUSES:
            totals.prizes += as_decimal(item.payout)
            totals.winners_count += 1

    if window.period == Period.TODAY:
        summary.hourly = hourly_distribution(selected)
    return summary


def hourly_distribution(items: Iterable[BetItem]) -> list[HourBucket]:
    buckets: dict[int, tuple[int, Decimal]] = {}
    for item in items:
        if item.status == ItemStatus.CANCELLED or item.created_at is None:
            continue
        bets, sales = buckets.get(item.created_at.hour, (0, ZERO))
        buckets[item.created_at.hour] = (bets + 1, sales + as_decimal(item.amount))
    return [HourBucket(hour=hour, bets=bets, sales=sales) for hour, (bets, sales) in sorted(buckets.items())]


def number_key(item: BetItem) -> str:
    if item.family == LotteryFamily.COMBINATION:
        return combination_key(item) or "??"
    if item.family == LotteryFamily.ADJACENCY:
        return normalize_two_digit(item.selection) or "??"
    return (item.selection or "").strip() or "??"


def _number_name(item: BetItem, key: str, names: Mapping[str, str]) -> str:
    if item.family == LotteryFamily.COMBINATION:
        return "Combination"
    if item.family == LotteryFamily.ADJACENCY:
        return f"Number {key}"
    return names.get(key, "Unknown")


def rank_numbers(
    items: Iterable[BetItem],
    *,
    limit: int = 10,
    by: str = "times_played",
    names: Mapping[str, str] | None = None,
) -> list[NumberRanking]:
    """Top-N played numbers by ``times_played`` or ``total_amount``."""
    if by not in ("times_played", "total_amount"):
        raise ValueError(f"unsupported ranking: {by}")
    names = names or {}

    stats: dict[str, dict] = {}
    for item in items:
        if item.status == ItemStatus.CANCELLED:
            continue
        key = number_key(item)
        current = stats.setdefault(
            key,
            {"name": _number_name(item, key, names), "count": 0, "amount": ZERO, "potential": ZERO, "lotteries": {}},
        )
        amount = as_decimal(item.amount)
        current["count"] += 1
        current["amount"] += amount
        current["potential"] += as_decimal(item.prize if item.prize is not None else item.payout)
        lottery = current["lotteries"].setdefault(item.lottery_id, [item.lottery_name or item.lottery_id, 0, ZERO])
        lottery[1] += 1
        lottery[2] += amount

    rankings = [
        NumberRanking(
            number=key,
            name=data["name"],
            times_played=data["count"],
            total_amount=data["amount"],
            total_potential_win=data["potential"],
            lotteries=tuple(
                LotteryCount(lottery_id=lottery_id, lottery_name=name, count=count, amount=amount)
                for lottery_id, (name, count, amount) in sorted(
                    data["lotteries"].items(), key=lambda entry: (-entry[1][1], entry[0])
                )
            ),
        )
        for key, data in stats.items()
    ]
    rankings.sort(key=lambda ranking: (-getattr(ranking, by), ranking.number))
    return rankings[:limit]


def rank_resellers(summary: LedgerSummary, *, limit: int = 10) -> list[ResellerTotals]:
    ranked = sorted(summary.by_reseller.values(), key=lambda totals: (-totals.sales, totals.reseller_id))
    return ranked[:limit]
