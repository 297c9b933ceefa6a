from __future__ import annotations

from settlement_engine.config import settings
from settlement_engine.domain import CeilingPolicy
from settlement_engine.services.report_service import ReportService
from settlement_engine.services.settlement_service import SettlementService
from settlement_engine.services.stats_service import StatsService
from settlement_engine.storage.database import SessionLocal
from settlement_engine.storage.repository import LedgerRepository

repo = LedgerRepository(SessionLocal)
settlement_service = SettlementService(repo)
stats_service = StatsService(
    repo,
    week_start=settings.week_start,
    ceiling_policy=CeilingPolicy(settings.ceiling_policy),
)
report_service = ReportService(repo, week_start=settings.week_start, top_n=settings.report_top_n)


def get_settlement_service() -> SettlementService:
    return settlement_service


def get_stats_service() -> StatsService:
    return stats_service


def get_report_service() -> ReportService:
    return report_service
