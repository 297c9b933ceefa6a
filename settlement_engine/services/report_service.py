from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime, timedelta
from typing import Any

from settlement_engine.domain import ReportKind, ReportSnapshot, TimeWindow, build_report, previous_window, resolve_window
from settlement_engine.domain.reports import PERIOD_BY_KIND
from settlement_engine.storage.repository import LedgerRepository

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, repo: LedgerRepository, *, week_start: int = 0, top_n: int = 10) -> None:
        self.repo = repo
        self.week_start = week_start
        self.top_n = top_n

    def generate_report(
        self,
        kind: ReportKind | str,
        *,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
        visible_reseller_ids: Sequence[str] | None = None,
        now: datetime | None = None,
    ) -> ReportSnapshot:
        kind = ReportKind(kind)
        generated_at = now or datetime.now()
        window = resolve_window(
            PERIOD_BY_KIND[kind],
            now=generated_at,
            date_from=date_from,
            date_to=date_to,
            week_start=self.week_start,
        )

        span = TimeWindow(previous_window(window).start, window.end, window.period)
        items = self.repo.list_bet_items(span, reseller_ids=visible_reseller_ids)
        report = build_report(
            kind,
            window,
            items,
            generated_at=generated_at,
            top_n=self.top_n,
            names=self.repo.animal_names(),
        )
        self.repo.save_report(report)
        logger.info("generated %s report %s with %d bets", kind.value, report.id, report.stats.total_bets)
        return report

    def get_report(self, report_id: str) -> dict[str, Any] | None:
        return self.repo.get_report(report_id)

    def list_reports(self, kind: ReportKind | str | None = None) -> list[dict[str, Any]]:
        return self.repo.list_reports(ReportKind(kind).value if kind is not None else None)

    def clear_old_reports(self, days_old: int = 90, *, now: datetime | None = None) -> int:
        cutoff = (now or datetime.now()) - timedelta(days=days_old)
        deleted = self.repo.delete_reports_before(cutoff)
        logger.info("deleted %d reports generated before %s", deleted, cutoff.isoformat())
        return deleted
