from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime

from settlement_engine.domain import (
    CeilingPolicy,
    HierarchyReport,
    LedgerSummary,
    LotteryFamily,
    Period,
    QueryFailure,
    Reseller,
    TimeWindow,
    aggregate_ledger,
    build_hierarchy,
    resolve_window,
)
from settlement_engine.domain.ledger import LEDGER_FAILED, LEDGER_OK
from settlement_engine.storage.repository import LedgerRepository

logger = logging.getLogger(__name__)


@dataclass
class HierarchyOutcome:
    window: TimeWindow
    report: HierarchyReport | None
    status: str = LEDGER_OK
    error: str | None = None


class StatsService:
    """Aggregates the ledger per reseller and nets it through the hierarchy."""

    def __init__(
        self,
        repo: LedgerRepository,
        *,
        week_start: int = 0,
        ceiling_policy: CeilingPolicy = CeilingPolicy.PASS,
    ) -> None:
        self.repo = repo
        self.week_start = week_start
        self.ceiling_policy = ceiling_policy

    def resolve(
        self,
        period: Period | str,
        *,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
        now: datetime | None = None,
    ) -> TimeWindow:
        return resolve_window(period, now=now, date_from=date_from, date_to=date_to, week_start=self.week_start)

    def ledger(
        self,
        window: TimeWindow,
        *,
        visible_reseller_ids: Sequence[str] | None = None,
        family: LotteryFamily | None = None,
    ) -> LedgerSummary:
        if visible_reseller_ids is not None and not visible_reseller_ids:
            return LedgerSummary(window=window, family=family)

        try:
            items = self.repo.list_bet_items(window, reseller_ids=visible_reseller_ids, family=family)
        except QueryFailure as exc:
            logger.error("ledger aggregation failed for %s - %s: %s", window.start, window.end, exc)
            return LedgerSummary.failed(window, family, str(exc))
        return aggregate_ledger(items, window, visible_reseller_ids=visible_reseller_ids, family=family)

    def hierarchy(
        self,
        window: TimeWindow,
        *,
        visible_reseller_ids: Sequence[str] | None = None,
        family: LotteryFamily | None = None,
    ) -> HierarchyOutcome:
        summary = self.ledger(window, visible_reseller_ids=visible_reseller_ids, family=family)
        if not summary.ok:
            return HierarchyOutcome(window=window, report=None, status=LEDGER_FAILED, error=summary.error)
        if visible_reseller_ids is not None and not visible_reseller_ids:
            return HierarchyOutcome(window=window, report=HierarchyReport(window=window))

        try:
            resellers = self._visible_resellers(visible_reseller_ids)
        except QueryFailure as exc:
            return HierarchyOutcome(window=window, report=None, status=LEDGER_FAILED, error=str(exc))

        report = build_hierarchy(resellers, summary, policy=self.ceiling_policy)
        for issue in report.ceiling_issues:
            logger.warning(
                "reseller %s %s %s exceeds ceiling %s of parent %s",
                issue.reseller_id,
                issue.field,
                issue.value,
                issue.ceiling,
                issue.parent_id,
            )
        return HierarchyOutcome(window=window, report=report)

    def _visible_resellers(self, visible_reseller_ids: Sequence[str] | None) -> list[Reseller]:
        """Visible resellers plus their ancestors; everything when unscoped."""
        if visible_reseller_ids is None:
            return self.repo.list_resellers()

        loaded: dict[str, Reseller] = {}
        pending = set(visible_reseller_ids)
        while pending:
            for reseller in self.repo.list_resellers(reseller_ids=sorted(pending)):
                loaded[reseller.id] = reseller
            pending = {
                reseller.parent_id
                for reseller in loaded.values()
                if reseller.parent_id is not None and reseller.parent_id not in loaded
            } - pending
        return list(loaded.values())
