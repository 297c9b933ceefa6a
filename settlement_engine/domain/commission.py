"""Commission netting and roll-up through the reseller hierarchy."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from .errors import CeilingViolation, DomainValidationError
from .ledger import LedgerSummary
from .models import ZERO, Reseller, ResellerRank
from .windows import TimeWindow

HUNDRED = Decimal("100")


class CeilingPolicy(str, Enum):
    PASS = "pass"
    CLAMP = "clamp"
    REJECT = "reject"


@dataclass(slots=True, frozen=True)
class CommissionSnapshot:
    reseller_id: str
    window: TimeWindow
    sales: Decimal
    prizes: Decimal
    commission: Decimal
    balance: Decimal
    share_on_sales: Decimal = ZERO


@dataclass(slots=True, frozen=True)
class CeilingIssue:
    reseller_id: str
    parent_id: str
    field: str
    value: Decimal
    ceiling: Decimal


@dataclass(slots=True)
class HierarchyNode:
    reseller: Reseller
    snapshot: CommissionSnapshot
    share_on_sales: Decimal
    share_on_profits: Decimal
    descendant_balance: Decimal
    profit_share: Decimal = ZERO
    children: list[str] = field(default_factory=list)


@dataclass(slots=True)
class HierarchyReport:
    window: TimeWindow
    nodes: dict[str, HierarchyNode] = field(default_factory=dict)
    roots: list[str] = field(default_factory=list)
    ceiling_issues: list[CeilingIssue] = field(default_factory=list)

    def node(self, reseller_id: str) -> HierarchyNode:
        try:
            return self.nodes[reseller_id]
        except KeyError as exc:
            raise DomainValidationError(f"unknown reseller: {reseller_id}") from exc


def compute_snapshot(
    reseller_id: str,
    window: TimeWindow,
    sales: Decimal,
    prizes: Decimal,
    share_on_sales: Decimal,
) -> CommissionSnapshot:
    commission = sales * share_on_sales / HUNDRED
    return CommissionSnapshot(
        reseller_id=reseller_id,
        window=window,
        sales=sales,
        prizes=prizes,
        commission=commission,
        balance=sales - prizes - commission,
        share_on_sales=share_on_sales,
    )


def profit_share(balance: Decimal, share_on_profits: Decimal) -> Decimal:
    return balance * share_on_profits / HUNDRED


def validate_share_ceiling(child: Reseller, parent: Reseller) -> list[CeilingIssue]:
    issues = []
    for name in ("share_on_sales", "share_on_profits"):
        value = getattr(child, name)
        ceiling = getattr(parent, name)
        if value > ceiling:
            issues.append(
                CeilingIssue(reseller_id=child.id, parent_id=parent.id, field=name, value=value, ceiling=ceiling)
            )
    return issues


def check_share_ceiling(child: Reseller, parent: Reseller | None) -> None:
    """Reject a reseller whose shares exceed the ceiling of its parent."""
    if parent is None:
        return
    for issue in validate_share_ceiling(child, parent):
        raise CeilingViolation(issue.reseller_id, issue.field, issue.value, issue.ceiling)


def build_hierarchy(
    resellers: Iterable[Reseller],
    ledger: LedgerSummary,
    *,
    policy: CeilingPolicy = CeilingPolicy.PASS,
) -> HierarchyReport:
    """Compute per-tier figures bottom-up.

    Point-of-sale snapshots come straight from the ledger. Agencies and
    distributors sum the sales and prizes of their children and net them
    with their own share on sales; their profit share is taken on the summed
    balance of every point-of-sale reseller beneath them.
    """
    by_id = {reseller.id: reseller for reseller in resellers}
    children: dict[str, list[str]] = {reseller_id: [] for reseller_id in by_id}
    roots: list[str] = []
    for reseller in sorted(by_id.values(), key=lambda r: r.id):
        if reseller.parent_id is not None and reseller.parent_id in by_id:
            children[reseller.parent_id].append(reseller.id)
        else:
            roots.append(reseller.id)

    report = HierarchyReport(window=ledger.window, roots=roots)
    effective: dict[str, tuple[Decimal, Decimal]] = {}

    def resolve_shares(reseller_id: str, ceiling: Reseller | None) -> None:
        reseller = by_id[reseller_id]
        share_on_sales = reseller.share_on_sales
        share_on_profits = reseller.share_on_profits
        if ceiling is not None:
            issues = validate_share_ceiling(reseller, ceiling)
            if issues and policy == CeilingPolicy.REJECT:
                issue = issues[0]
                raise CeilingViolation(issue.reseller_id, issue.field, issue.value, issue.ceiling)
            report.ceiling_issues.extend(issues)
            if policy == CeilingPolicy.CLAMP:
                share_on_sales = min(share_on_sales, ceiling.share_on_sales)
                share_on_profits = min(share_on_profits, ceiling.share_on_profits)
        effective[reseller_id] = (share_on_sales, share_on_profits)
        clamped = Reseller(
            id=reseller.id,
            name=reseller.name,
            rank=reseller.rank,
            parent_id=reseller.parent_id,
            share_on_sales=share_on_sales,
            share_on_profits=share_on_profits,
            is_active=reseller.is_active,
        )
        for child_id in children[reseller_id]:
            resolve_shares(child_id, clamped)

    def roll_up(reseller_id: str, visiting: frozenset[str]) -> HierarchyNode:
        if reseller_id in report.nodes:
            return report.nodes[reseller_id]
        if reseller_id in visiting:
            raise DomainValidationError(f"reseller hierarchy has a cycle through {reseller_id}")

        reseller = by_id[reseller_id]
        share_on_sales, share_on_profits = effective[reseller_id]
        if reseller.rank == ResellerRank.POINT_OF_SALE:
            totals = ledger.totals_for(reseller_id)
            snapshot = compute_snapshot(reseller_id, ledger.window, totals.sales, totals.prizes, share_on_sales)
            node = HierarchyNode(
                reseller=reseller,
                snapshot=snapshot,
                share_on_sales=share_on_sales,
                share_on_profits=share_on_profits,
                descendant_balance=snapshot.balance,
                children=list(children[reseller_id]),
            )
        else:
            child_nodes = [roll_up(child_id, visiting | {reseller_id}) for child_id in children[reseller_id]]
            sales = sum((child.snapshot.sales for child in child_nodes), ZERO)
            prizes = sum((child.snapshot.prizes for child in child_nodes), ZERO)
            descendant_balance = sum((child.descendant_balance for child in child_nodes), ZERO)
            node = HierarchyNode(
                reseller=reseller,
                snapshot=compute_snapshot(reseller_id, ledger.window, sales, prizes, share_on_sales),
                share_on_sales=share_on_sales,
                share_on_profits=share_on_profits,
                descendant_balance=descendant_balance,
                profit_share=profit_share(descendant_balance, share_on_profits),
                children=list(children[reseller_id]),
            )
        report.nodes[reseller_id] = node
        return node

    for root_id in roots:
        parent = by_id.get(by_id[root_id].parent_id) if by_id[root_id].parent_id else None
        resolve_shares(root_id, parent)
    unreachable = set(by_id) - set(effective)
    if unreachable:
        raise DomainValidationError(f"reseller hierarchy has a cycle through {sorted(unreachable)[0]}")

    for root_id in roots:
        roll_up(root_id, frozenset())
    return report
