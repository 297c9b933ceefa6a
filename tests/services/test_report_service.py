from datetime import date, datetime, timedelta

import pytest

from settlement_engine.domain import InvalidRange, ReportKind
from settlement_engine.services.report_service import ReportService

NOW = datetime(2024, 5, 1, 20, 0)


@pytest.fixture
def seeded(ledger):
    ledger.reseller("pos-a", "point_of_sale", share_on_sales="10")
    ledger.lottery("lot-1", "classic", prizes={"07": ("Delfin", "40")})
    ledger.item(
        reseller_id="pos-a", lottery_id="lot-1", family="classic", amount="10", selection="07", status="winner", payout="400"
    )
    ledger.item(reseller_id="pos-a", lottery_id="lot-1", family="classic", amount="30", selection="12", status="loser")
    ledger.item(
        reseller_id="pos-a",
        lottery_id="lot-1",
        family="classic",
        amount="20",
        selection="07",
        created_at=datetime(2024, 4, 30, 18, 0),
    )
    return ledger


def test_daily_report_is_generated_and_stored(seeded, repo):
    service = ReportService(repo)

    report = service.generate_report(ReportKind.DAILY, now=NOW)
    stored = service.get_report(report.id)

    assert report.stats.total_sales == 40
    assert report.stats.net_profit == -360
    assert report.trends.sales_trend == 100
    assert report.top_numbers[0].name == "Delfin"
    assert stored["kind"] == "daily"
    assert stored["title"] == "Daily report - 01/05/2024"
    assert stored["data"]["total_sales"] == "40.00"
    assert stored["data"]["top_lotteries"][0]["name"] == "Lottery lot-1"


def test_custom_report_requires_ordered_range(seeded, repo):
    service = ReportService(repo)

    report = service.generate_report(ReportKind.CUSTOM, date_from=date(2024, 4, 30), date_to=date(2024, 5, 1), now=NOW)

    assert report.stats.total_sales == 60
    with pytest.raises(InvalidRange):
        service.generate_report(ReportKind.CUSTOM, date_from=date(2024, 5, 1), date_to=date(2024, 4, 30), now=NOW)


def test_report_with_no_visible_resellers_is_empty(seeded, repo):
    report = ReportService(repo).generate_report(ReportKind.DAILY, visible_reseller_ids=[], now=NOW)

    assert report.stats.total_sales == 0
    assert report.top_numbers == []


def test_list_reports_filters_by_kind(seeded, repo):
    service = ReportService(repo)
    service.generate_report(ReportKind.DAILY, now=NOW)
    service.generate_report(ReportKind.MONTHLY, now=NOW + timedelta(minutes=5))

    assert [report["kind"] for report in service.list_reports()] == ["monthly", "daily"]
    assert [report["kind"] for report in service.list_reports("daily")] == ["daily"]


def test_clear_old_reports_removes_only_expired(seeded, repo):
    service = ReportService(repo)
    old = service.generate_report(ReportKind.DAILY, now=NOW - timedelta(days=120))
    recent = service.generate_report(ReportKind.DAILY, now=NOW)

    deleted = service.clear_old_reports(90, now=NOW)

    assert deleted == 1
    assert service.get_report(old.id) is None
    assert service.get_report(recent.id) is not None


def test_get_unknown_report_returns_none(repo):
    assert ReportService(repo).get_report("missing") is None
