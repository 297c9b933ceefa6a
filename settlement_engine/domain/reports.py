from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from .ledger import (
    HourBucket,
    NumberRanking,
    ResellerTotals,
    aggregate_ledger,
    hourly_distribution,
    rank_numbers,
    rank_resellers,
    select_items,
)
from .models import PRIZE_STATUSES, ZERO, BetItem, ItemStatus, as_decimal, to_minor_unit
from .windows import Period, TimeWindow, previous_window

TOP_LOTTERIES_LIMIT = 5


class ReportKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


PERIOD_BY_KIND = {
    ReportKind.DAILY: Period.TODAY,
    ReportKind.WEEKLY: Period.WEEK,
    ReportKind.MONTHLY: Period.MONTH,
    ReportKind.CUSTOM: Period.RANGE,
}


@dataclass(slots=True, frozen=True)
class PeriodStats:
    total_sales: Decimal
    total_bets: int
    average_bet: Decimal
    total_payout: Decimal
    net_profit: Decimal
    winners: int


@dataclass(slots=True, frozen=True)
class LotteryRanking:
    lottery_id: str
    name: str
    sales: Decimal
    bets: int


@dataclass(slots=True, frozen=True)
class Trends:
    sales_trend: Decimal
    bets_trend: Decimal
    profit_trend: Decimal


@dataclass(slots=True, frozen=True)
class ReportSnapshot:
    id: str
    kind: ReportKind
    title: str
    window: TimeWindow
    generated_at: datetime
    stats: PeriodStats
    trends: Trends
    top_lotteries: list[LotteryRanking] = field(default_factory=list)
    top_numbers: list[NumberRanking] = field(default_factory=list)
    top_resellers: list[ResellerTotals] = field(default_factory=list)
    hourly: list[HourBucket] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "total_sales": _money(self.stats.total_sales),
            "total_bets": self.stats.total_bets,
            "average_bet": _money(self.stats.average_bet),
            "total_payout": _money(self.stats.total_payout),
            "net_profit": _money(self.stats.net_profit),
            "winners": self.stats.winners,
            "top_lotteries": [
                {"lottery_id": lottery.lottery_id, "name": lottery.name, "sales": _money(lottery.sales), "bets": lottery.bets}
                for lottery in self.top_lotteries
            ],
            "top_numbers": [
                {
                    "number": ranking.number,
                    "name": ranking.name,
                    "bets": ranking.times_played,
                    "amount": _money(ranking.total_amount),
                }
                for ranking in self.top_numbers
            ],
            "top_resellers": [
                {
                    "reseller_id": totals.reseller_id,
                    "sales": _money(totals.sales),
                    "prizes": _money(totals.prizes),
                    "bets": totals.bets_count,
                }
                for totals in self.top_resellers
            ],
            "hourly": [
                {"hour": bucket.label, "bets": bucket.bets, "sales": _money(bucket.sales)} for bucket in self.hourly
            ],
            "trends": {
                "sales_trend": _money(self.trends.sales_trend),
                "bets_trend": _money(self.trends.bets_trend),
                "profit_trend": _money(self.trends.profit_trend),
            },
        }


def _money(value: Decimal) -> str:
    return str(to_minor_unit(value))


def period_stats(items: Sequence[BetItem]) -> PeriodStats:
    placed = [item for item in items if item.status != ItemStatus.CANCELLED]
    total_sales = sum((as_decimal(item.amount) for item in placed), ZERO)
    total_payout = sum((as_decimal(item.payout) for item in items if item.status in PRIZE_STATUSES), ZERO)
    return PeriodStats(
        total_sales=total_sales,
        total_bets=len(placed),
        average_bet=total_sales / len(placed) if placed else ZERO,
        total_payout=total_payout,
        net_profit=total_sales - total_payout,
        winners=sum(1 for item in items if item.status in PRIZE_STATUSES),
    )


def percentage_change(current: Decimal, previous: Decimal) -> Decimal:
    if previous <= 0:
        return ZERO
    return (current - previous) / previous * 100


def rank_lotteries(items: Iterable[BetItem], *, limit: int = TOP_LOTTERIES_LIMIT) -> list[LotteryRanking]:
    stats: dict[str, tuple[str, Decimal, int]] = {}
    for item in items:
        if item.status == ItemStatus.CANCELLED:
            continue
        name, sales, bets = stats.get(item.lottery_id, (item.lottery_name or item.lottery_id, ZERO, 0))
        stats[item.lottery_id] = (name, sales + as_decimal(item.amount), bets + 1)
    rankings = [
        LotteryRanking(lottery_id=lottery_id, name=name, sales=sales, bets=bets)
        for lottery_id, (name, sales, bets) in stats.items()
    ]
    rankings.sort(key=lambda ranking: (-ranking.sales, ranking.lottery_id))
    return rankings[:limit]


def report_title(kind: ReportKind, window: TimeWindow) -> str:
    if kind == ReportKind.DAILY:
        return f"Daily report - {window.start:%d/%m/%Y}"
    if kind == ReportKind.WEEKLY:
        return f"Weekly report - {window.start:%d/%m/%Y}"
    if kind == ReportKind.MONTHLY:
        return f"Monthly report - {window.start:%m/%Y}"
    return f"Custom report - {window.start:%d/%m/%Y} to {window.end:%d/%m/%Y}"


def build_report(
    kind: ReportKind,
    window: TimeWindow,
    items: Iterable[BetItem],
    *,
    generated_at: datetime,
    top_n: int = 10,
    names: Mapping[str, str] | None = None,
    report_id: str | None = None,
) -> ReportSnapshot:
    """Materialize a report for ``window`` with trends against the preceding window.

    ``items`` may span both windows; each one is selected separately.
    """
    ledger_items = list(items)
    current = select_items(ledger_items, window)
    previous = select_items(ledger_items, previous_window(window))

    current_stats = period_stats(current)
    previous_stats = period_stats(previous)
    trends = Trends(
        sales_trend=percentage_change(current_stats.total_sales, previous_stats.total_sales),
        bets_trend=percentage_change(Decimal(current_stats.total_bets), Decimal(previous_stats.total_bets)),
        profit_trend=percentage_change(current_stats.net_profit, previous_stats.net_profit),
    )

    return ReportSnapshot(
        id=report_id or f"report-{kind.value}-{uuid4().hex}",
        kind=kind,
        title=report_title(kind, window),
        window=window,
        generated_at=generated_at,
        stats=current_stats,
        trends=trends,
        top_lotteries=rank_lotteries(current),
        top_numbers=rank_numbers(current, limit=top_n, names=names),
        top_resellers=rank_resellers(aggregate_ledger(current, window), limit=top_n),
        hourly=hourly_distribution(current),
    )
