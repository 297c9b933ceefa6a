from .commission import (
    CeilingIssue,
    CeilingPolicy,
    CommissionSnapshot,
    HierarchyNode,
    HierarchyReport,
    build_hierarchy,
    check_share_ceiling,
    compute_snapshot,
    validate_share_ceiling,
)
from .errors import CeilingViolation, DomainValidationError, InvalidRange, QueryFailure
from .ledger import LedgerSummary, ResellerTotals, aggregate_ledger, rank_numbers, rank_resellers
from .models import (
    Bet,
    BetItem,
    BetStatus,
    DrawResult,
    ItemStatus,
    LotteryFamily,
    PrizeEntry,
    Reseller,
    ResellerRank,
    to_minor_unit,
)
from .reports import ReportKind, ReportSnapshot, build_report
from .windows import Period, TimeWindow, previous_window, resolve_window
from .winners import WinnerDecision, determine_winner

__all__ = [
    "Bet",
    "BetItem",
    "BetStatus",
    "CeilingIssue",
    "CeilingPolicy",
    "CeilingViolation",
    "CommissionSnapshot",
    "DomainValidationError",
    "DrawResult",
    "HierarchyNode",
    "HierarchyReport",
    "InvalidRange",
    "ItemStatus",
    "LedgerSummary",
    "LotteryFamily",
    "Period",
    "PrizeEntry",
    "QueryFailure",
    "ReportKind",
    "ReportSnapshot",
    "Reseller",
    "ResellerRank",
    "ResellerTotals",
    "TimeWindow",
    "WinnerDecision",
    "aggregate_ledger",
    "build_hierarchy",
    "build_report",
    "check_share_ceiling",
    "compute_snapshot",
    "determine_winner",
    "previous_window",
    "rank_numbers",
    "rank_resellers",
    "resolve_window",
    "to_minor_unit",
    "validate_share_ceiling",
]
