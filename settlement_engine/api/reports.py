from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from settlement_engine.api.errors import translate_error
from settlement_engine.api.schemas import CountResponse, GenerateReportRequest, ReportResponse
from settlement_engine.config import settings
from settlement_engine.domain import DomainValidationError, QueryFailure, ReportKind
from settlement_engine.runtime import get_report_service
from settlement_engine.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED, summary="Generate a report")
def generate_report(
    payload: GenerateReportRequest,
    service: ReportService = Depends(get_report_service),
) -> ReportResponse:
    try:
        report = service.generate_report(
            payload.kind,
            date_from=payload.date_from,
            date_to=payload.date_to,
            visible_reseller_ids=payload.visible_reseller_ids,
        )
        stored = service.get_report(report.id)
    except (DomainValidationError, QueryFailure) as exc:
        raise translate_error(exc) from exc
    return ReportResponse(**stored)


@router.get("", response_model=list[ReportResponse])
def list_reports(
    kind: ReportKind | None = None,
    service: ReportService = Depends(get_report_service),
) -> list[ReportResponse]:
    try:
        return [ReportResponse(**report) for report in service.list_reports(kind)]
    except QueryFailure as exc:
        raise translate_error(exc) from exc


@router.delete("/old", response_model=CountResponse, summary="Delete reports older than N days")
def clear_old_reports(
    days: int = Query(default=settings.report_retention_days, ge=1),
    service: ReportService = Depends(get_report_service),
) -> CountResponse:
    try:
        return CountResponse(count=service.clear_old_reports(days))
    except QueryFailure as exc:
        raise translate_error(exc) from exc


@router.get("/{report_id}", response_model=ReportResponse)
def get_report(report_id: str, service: ReportService = Depends(get_report_service)) -> ReportResponse:
    try:
        report = service.get_report(report_id)
    except QueryFailure as exc:
        raise translate_error(exc) from exc
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "code": "report_not_found",
                "message": f"Report {report_id} not found",
                "details": {"id": report_id},
            },
        )
    return ReportResponse(**report)
