from datetime import datetime
from decimal import Decimal

import pytest

from settlement_engine.domain import (
    CeilingPolicy,
    CeilingViolation,
    LedgerSummary,
    Reseller,
    ResellerRank,
    ResellerTotals,
    TimeWindow,
    build_hierarchy,
    check_share_ceiling,
    compute_snapshot,
    to_minor_unit,
)
from settlement_engine.domain.errors import DomainValidationError

WINDOW = TimeWindow(datetime(2024, 4, 29), datetime(2024, 5, 2, 12, 0))

DISTRIBUTOR = Reseller("dist", "Distributor", ResellerRank.DISTRIBUTOR, None, Decimal("12"), Decimal("30"))
AGENCY = Reseller("agency", "Agency", ResellerRank.AGENCY, "dist", Decimal("10"), Decimal("20"))
POS_A = Reseller("pos-a", "POS A", ResellerRank.POINT_OF_SALE, "agency", Decimal("10"), Decimal("0"))
POS_B = Reseller("pos-b", "POS B", ResellerRank.POINT_OF_SALE, "agency", Decimal("10"), Decimal("0"))


def _ledger(**totals) -> LedgerSummary:
    return LedgerSummary(
        window=WINDOW,
        by_reseller={
            reseller_id: ResellerTotals(reseller_id=reseller_id, sales=Decimal(sales), prizes=Decimal(prizes))
            for reseller_id, (sales, prizes) in totals.items()
        },
    )


def test_point_of_sale_commission_and_balance():
    snapshot = compute_snapshot("pos-a", WINDOW, Decimal("1000"), Decimal("400"), Decimal("10"))

    assert snapshot.commission == Decimal("100")
    assert snapshot.balance == Decimal("500")


def test_zero_sales_yields_negative_balance():
    snapshot = compute_snapshot("pos-a", WINDOW, Decimal("0"), Decimal("250"), Decimal("10"))

    assert snapshot.commission == 0
    assert snapshot.balance == Decimal("-250")


@pytest.mark.parametrize(
    "sales, prizes, share",
    [("1000", "400", "10"), ("333.33", "12.5", "7.5"), ("0.01", "0", "33.33"), ("10", "900", "100")],
)
def test_balance_identity_holds_exactly(sales, prizes, share):
    snapshot = compute_snapshot("pos", WINDOW, Decimal(sales), Decimal(prizes), Decimal(share))

    assert snapshot.balance == snapshot.sales - snapshot.prizes - snapshot.commission


def test_agency_profit_share_is_taken_on_children_balances():
    report = build_hierarchy([DISTRIBUTOR, AGENCY, POS_A, POS_B], _ledger(**{"pos-a": ("1000", "300"), "pos-b": ("1000", "0")}))

    pos_a = report.node("pos-a").snapshot
    pos_b = report.node("pos-b").snapshot
    agency = report.node("agency")
    assert pos_a.balance == Decimal("600")
    assert pos_b.balance == Decimal("900")
    assert agency.profit_share == Decimal("0.20") * (pos_a.balance + pos_b.balance)
    assert agency.profit_share == Decimal("300")


def test_agency_snapshot_sums_children_and_applies_own_share():
    report = build_hierarchy([DISTRIBUTOR, AGENCY, POS_A, POS_B], _ledger(**{"pos-a": ("1000", "300"), "pos-b": ("500", "0")}))

    agency = report.node("agency").snapshot
    assert agency.sales == Decimal("1500")
    assert agency.prizes == Decimal("300")
    assert agency.commission == Decimal("150")
    assert agency.balance == agency.sales - agency.prizes - agency.commission


def test_distributor_profit_share_covers_every_point_of_sale_below():
    other_agency = Reseller("agency-2", "Agency 2", ResellerRank.AGENCY, "dist", Decimal("5"), Decimal("10"))
    pos_c = Reseller("pos-c", "POS C", ResellerRank.POINT_OF_SALE, "agency-2", Decimal("5"), Decimal("0"))
    ledger = _ledger(**{"pos-a": ("1000", "300"), "pos-b": ("1000", "0"), "pos-c": ("200", "50")})

    report = build_hierarchy([DISTRIBUTOR, AGENCY, other_agency, POS_A, POS_B, pos_c], ledger)

    descendant_balance = sum(report.node(r).snapshot.balance for r in ("pos-a", "pos-b", "pos-c"))
    distributor = report.node("dist")
    assert distributor.descendant_balance == descendant_balance
    assert distributor.profit_share == descendant_balance * Decimal("30") / 100
    assert distributor.snapshot.sales == Decimal("2200")
    assert report.roots == ["dist"]


def test_reseller_without_sales_still_gets_a_node():
    report = build_hierarchy([DISTRIBUTOR, AGENCY, POS_A, POS_B], _ledger(**{"pos-a": ("100", "0")}))

    assert report.node("pos-b").snapshot.sales == 0
    assert report.node("pos-b").snapshot.balance == 0


def test_snapshots_are_deterministic():
    ledger = _ledger(**{"pos-a": ("1234.56", "78.9"), "pos-b": ("10", "5")})
    resellers = [DISTRIBUTOR, AGENCY, POS_A, POS_B]

    first = build_hierarchy(resellers, ledger)
    second = build_hierarchy(list(reversed(resellers)), ledger)

    for reseller_id in ("dist", "agency", "pos-a", "pos-b"):
        assert first.node(reseller_id).snapshot == second.node(reseller_id).snapshot


def test_ceiling_violation_passes_through_and_is_reported():
    greedy = Reseller("pos-a", "POS A", ResellerRank.POINT_OF_SALE, "agency", Decimal("15"), Decimal("0"))

    report = build_hierarchy([DISTRIBUTOR, AGENCY, greedy], _ledger(**{"pos-a": ("1000", "0")}))

    assert report.node("pos-a").snapshot.commission == Decimal("150")
    assert [(issue.reseller_id, issue.field) for issue in report.ceiling_issues] == [("pos-a", "share_on_sales")]


def test_ceiling_violation_can_be_clamped():
    greedy = Reseller("pos-a", "POS A", ResellerRank.POINT_OF_SALE, "agency", Decimal("15"), Decimal("0"))

    report = build_hierarchy([DISTRIBUTOR, AGENCY, greedy], _ledger(**{"pos-a": ("1000", "0")}), policy=CeilingPolicy.CLAMP)

    assert report.node("pos-a").share_on_sales == Decimal("10")
    assert report.node("pos-a").snapshot.commission == Decimal("100")


def test_ceiling_violation_can_be_rejected():
    greedy = Reseller("pos-a", "POS A", ResellerRank.POINT_OF_SALE, "agency", Decimal("15"), Decimal("0"))

    with pytest.raises(CeilingViolation):
        build_hierarchy([DISTRIBUTOR, AGENCY, greedy], _ledger(), policy=CeilingPolicy.REJECT)


def test_check_share_ceiling_for_edits():
    check_share_ceiling(POS_A, AGENCY)
    check_share_ceiling(DISTRIBUTOR, None)
    with pytest.raises(CeilingViolation):
        check_share_ceiling(Reseller("x", "X", ResellerRank.AGENCY, "dist", Decimal("5"), Decimal("31")), DISTRIBUTOR)


def test_cycle_in_hierarchy_is_rejected():
    a = Reseller("a", "A", ResellerRank.AGENCY, "b")
    b = Reseller("b", "B", ResellerRank.AGENCY, "a")

    with pytest.raises(DomainValidationError):
        build_hierarchy([a, b], _ledger())


def test_display_rounding_only_at_the_edge():
    snapshot = compute_snapshot("pos", WINDOW, Decimal("10.005"), Decimal("0"), Decimal("0"))

    assert snapshot.sales == Decimal("10.005")
    assert to_minor_unit(snapshot.sales) == Decimal("10.01")
