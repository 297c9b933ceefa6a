from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, model_validator

from settlement_engine.domain import LotteryFamily, ReportKind


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Any | None = None


class SettleDrawRequest(BaseModel):
    lottery_id: str = Field(..., min_length=1, examples=["lottery-1"])
    family: LotteryFamily = Field(..., examples=["adjacency"])
    winning_number: str = Field(..., min_length=1, description="Winning number or combination key", examples=["45"])
    draw_date: date = Field(..., examples=["2024-05-01"])

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "lottery_id": "lottery-1",
                    "family": "classic",
                    "winning_number": "07",
                    "draw_date": "2024-05-01",
                }
            ]
        }
    }


class SettlementResponse(BaseModel):
    draw_id: str | None
    lottery_id: str
    family: LotteryFamily
    winning_number: str
    draw_date: date
    evaluated: int
    winners_marked: int
    losers_marked: int
    already_settled: int
    total_paid: Decimal
    total_raised: Decimal
    configuration_gaps: list[str]


class MarkPaidRequest(BaseModel):
    ids: list[str] = Field(..., min_length=1)


class CountResponse(BaseModel):
    count: int


class ResellerTotalsResponse(BaseModel):
    reseller_id: str
    sales: Decimal
    prizes: Decimal
    bets_count: int
    winners_count: int


class HourBucketResponse(BaseModel):
    hour: str
    bets: int
    sales: Decimal


class LedgerResponse(BaseModel):
    status: str
    error: str | None = None
    window_start: datetime
    window_end: datetime
    total_sales: Decimal
    total_prizes: Decimal
    resellers: list[ResellerTotalsResponse]
    hourly: list[HourBucketResponse]


class HierarchyNodeResponse(BaseModel):
    reseller_id: str
    name: str
    rank: str
    parent_id: str | None
    sales: Decimal
    prizes: Decimal
    commission: Decimal
    balance: Decimal
    profit_share: Decimal
    share_on_sales: Decimal
    share_on_profits: Decimal


class CeilingIssueResponse(BaseModel):
    reseller_id: str
    parent_id: str
    field: str
    value: Decimal
    ceiling: Decimal


class HierarchyResponse(BaseModel):
    status: str
    error: str | None = None
    window_start: datetime
    window_end: datetime
    nodes: list[HierarchyNodeResponse]
    ceiling_issues: list[CeilingIssueResponse]


class GenerateReportRequest(BaseModel):
    kind: ReportKind = Field(..., examples=["weekly"])
    date_from: date | None = None
    date_to: date | None = None
    visible_reseller_ids: list[str] | None = None

    @model_validator(mode="after")
    def validate_custom_dates(self) -> "GenerateReportRequest":
        if self.kind == ReportKind.CUSTOM and (self.date_from is None or self.date_to is None):
            raise ValueError("custom reports require date_from and date_to")
        return self


class ReportResponse(BaseModel):
    id: str
    kind: str
    title: str
    start_date: str
    end_date: str
    generated_at: str
    data: dict[str, Any]
