from datetime import date

from fastapi import APIRouter, Depends, Query

from settlement_engine.api.errors import translate_error
from settlement_engine.api.schemas import (
    CeilingIssueResponse,
    HierarchyNodeResponse,
    HierarchyResponse,
    HourBucketResponse,
    LedgerResponse,
    ResellerTotalsResponse,
)
from settlement_engine.domain import DomainValidationError, LotteryFamily, Period, rank_resellers, to_minor_unit
from settlement_engine.runtime import get_stats_service
from settlement_engine.services.stats_service import StatsService

router = APIRouter(prefix="/stats", tags=["stats"])


def _visible_ids(visible: str | None) -> list[str] | None:
    # absent = no filter, empty string = no visible resellers
    if visible is None:
        return None
    return [reseller_id.strip() for reseller_id in visible.split(",") if reseller_id.strip()]


@router.get("/ledger", response_model=LedgerResponse)
def stats_ledger(
    period: Period = Period.TODAY,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    family: LotteryFamily | None = None,
    visible: str | None = Query(default=None, description="Comma-separated reseller ids"),
    service: StatsService = Depends(get_stats_service),
) -> LedgerResponse:
    try:
        window = service.resolve(period, date_from=date_from, date_to=date_to)
    except DomainValidationError as exc:
        raise translate_error(exc) from exc

    summary = service.ledger(window, visible_reseller_ids=_visible_ids(visible), family=family)
    return LedgerResponse(
        status=summary.status,
        error=summary.error,
        window_start=window.start,
        window_end=window.end,
        total_sales=to_minor_unit(summary.total_sales),
        total_prizes=to_minor_unit(summary.total_prizes),
        resellers=[
            ResellerTotalsResponse(
                reseller_id=totals.reseller_id,
                sales=to_minor_unit(totals.sales),
                prizes=to_minor_unit(totals.prizes),
                bets_count=totals.bets_count,
                winners_count=totals.winners_count,
            )
            for totals in rank_resellers(summary, limit=len(summary.by_reseller))
        ],
        hourly=[
            HourBucketResponse(hour=bucket.label, bets=bucket.bets, sales=to_minor_unit(bucket.sales))
            for bucket in summary.hourly
        ],
    )


@router.get("/hierarchy", response_model=HierarchyResponse)
def stats_hierarchy(
    period: Period = Period.WEEK,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    family: LotteryFamily | None = None,
    visible: str | None = Query(default=None, description="Comma-separated reseller ids"),
    service: StatsService = Depends(get_stats_service),
) -> HierarchyResponse:
    try:
        window = service.resolve(period, date_from=date_from, date_to=date_to)
        outcome = service.hierarchy(window, visible_reseller_ids=_visible_ids(visible), family=family)
    except DomainValidationError as exc:
        raise translate_error(exc) from exc

    nodes = outcome.report.nodes.values() if outcome.report else []
    issues = outcome.report.ceiling_issues if outcome.report else []
    return HierarchyResponse(
        status=outcome.status,
        error=outcome.error,
        window_start=window.start,
        window_end=window.end,
        nodes=[
            HierarchyNodeResponse(
                reseller_id=node.reseller.id,
                name=node.reseller.name,
                rank=node.reseller.rank.value,
                parent_id=node.reseller.parent_id,
                sales=to_minor_unit(node.snapshot.sales),
                prizes=to_minor_unit(node.snapshot.prizes),
                commission=to_minor_unit(node.snapshot.commission),
                balance=to_minor_unit(node.snapshot.balance),
                profit_share=to_minor_unit(node.profit_share),
                share_on_sales=node.share_on_sales,
                share_on_profits=node.share_on_profits,
            )
            for node in sorted(nodes, key=lambda node: (-node.snapshot.sales, node.reseller.id))
        ],
        ceiling_issues=[
            CeilingIssueResponse(
                reseller_id=issue.reseller_id,
                parent_id=issue.parent_id,
                field=issue.field,
                value=issue.value,
                ceiling=issue.ceiling,
            )
            for issue in issues
        ],
    )
