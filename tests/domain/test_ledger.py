from datetime import datetime
from decimal import Decimal

from settlement_engine.domain import BetItem, ItemStatus, LotteryFamily, TimeWindow, aggregate_ledger
from settlement_engine.domain.ledger import rank_numbers, rank_resellers
from settlement_engine.domain.windows import Period

WINDOW = TimeWindow(datetime(2024, 5, 1), datetime(2024, 5, 1, 23, 59, 59), Period.TODAY)


def _item(item_id, reseller_id, amount, status=ItemStatus.ACTIVE, payout=None, hour=10, selection="07", **kwargs):
    return BetItem(
        id=item_id,
        bet_id=f"bet-{item_id}",
        reseller_id=reseller_id,
        family=kwargs.pop("family", LotteryFamily.CLASSIC),
        lottery_id=kwargs.pop("lottery_id", "lot-1"),
        amount=Decimal(amount),
        status=status,
        selection=selection,
        payout=Decimal(payout) if payout is not None else None,
        created_at=kwargs.pop("created_at", datetime(2024, 5, 1, hour, 15)),
        **kwargs,
    )


ITEMS = [
    _item("1", "pos-a", "10", ItemStatus.WINNER, payout="400", hour=9),
    _item("2", "pos-a", "20", ItemStatus.LOSER, hour=9),
    _item("3", "pos-a", "30", ItemStatus.CANCELLED, hour=11),
    _item("4", "pos-b", "15", ItemStatus.PAID, payout="75", hour=11, selection="12"),
    _item("5", "pos-b", "5", ItemStatus.ACTIVE, hour=11, selection="12"),
    _item("6", "pos-b", "99", created_at=datetime(2024, 5, 2, 8, 0)),
    _item("7", "pos-c", "7", family=LotteryFamily.ADJACENCY, selection="3"),
]


def test_sales_exclude_cancelled_and_prizes_count_settled_winners():
    summary = aggregate_ledger(ITEMS, WINDOW)

    a = summary.totals_for("pos-a")
    b = summary.totals_for("pos-b")
    assert a.sales == Decimal("30")
    assert a.prizes == Decimal("400")
    assert a.bets_count == 2
    assert a.winners_count == 1
    assert b.sales == Decimal("20")
    assert b.prizes == Decimal("75")
    assert summary.total_sales == Decimal("57")
    assert summary.ok


def test_items_outside_window_are_ignored():
    summary = aggregate_ledger(ITEMS, WINDOW)

    assert summary.totals_for("pos-b").bets_count == 2


def test_empty_visible_list_means_no_access():
    summary = aggregate_ledger(ITEMS, WINDOW, visible_reseller_ids=[])

    assert summary.by_reseller == {}
    assert summary.total_sales == 0
    assert summary.total_prizes == 0
    assert summary.ok


def test_visible_list_scopes_resellers():
    summary = aggregate_ledger(ITEMS, WINDOW, visible_reseller_ids=["pos-b"])

    assert set(summary.by_reseller) == {"pos-b"}


def test_family_filter():
    summary = aggregate_ledger(ITEMS, WINDOW, family=LotteryFamily.ADJACENCY)

    assert set(summary.by_reseller) == {"pos-c"}
    assert summary.total_sales == Decimal("7")


def test_today_window_buckets_sales_by_hour():
    summary = aggregate_ledger(ITEMS, WINDOW)

    assert [(bucket.label, bucket.bets, bucket.sales) for bucket in summary.hourly] == [
        ("09:00", 2, Decimal("30")),
        ("10:00", 1, Decimal("7")),
        ("11:00", 2, Decimal("20")),
    ]


def test_aggregation_is_deterministic_regardless_of_input_order():
    forward = aggregate_ledger(ITEMS, WINDOW)
    backward = aggregate_ledger(list(reversed(ITEMS)), WINDOW)

    assert forward.by_reseller == backward.by_reseller
    assert forward.hourly == backward.hourly


def test_rank_numbers_by_times_played_and_amount():
    items = [
        _item("1", "pos-a", "1", selection="07"),
        _item("2", "pos-a", "1", selection="07"),
        _item("3", "pos-a", "50", selection="12"),
        _item("4", "pos-a", "100", ItemStatus.CANCELLED, selection="30"),
    ]

    by_count = rank_numbers(items, names={"07": "Delfin"})
    by_amount = rank_numbers(items, by="total_amount")

    assert [ranking.number for ranking in by_count] == ["07", "12"]
    assert by_count[0].name == "Delfin"
    assert by_count[0].times_played == 2
    assert by_count[0].lotteries[0].count == 2
    assert by_amount[0].number == "12"
    assert by_amount[0].average_amount == Decimal("50")


def test_rank_resellers_by_sales():
    summary = aggregate_ledger(ITEMS, WINDOW)

    ranked = rank_resellers(summary, limit=2)

    assert [totals.reseller_id for totals in ranked] == ["pos-a", "pos-b"]
