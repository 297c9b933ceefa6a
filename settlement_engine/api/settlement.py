from __future__ import annotations

from fastapi import APIRouter, Depends

from settlement_engine.api.errors import translate_error
from settlement_engine.api.schemas import CountResponse, MarkPaidRequest, SettleDrawRequest, SettlementResponse
from settlement_engine.domain import DomainValidationError, DrawResult, QueryFailure, to_minor_unit
from settlement_engine.runtime import get_settlement_service
from settlement_engine.services.settlement_service import SettlementService

router = APIRouter(tags=["settlement"])


@router.post("/settlements", response_model=SettlementResponse, summary="Settle a lottery draw")
def settle_draw(
    payload: SettleDrawRequest,
    service: SettlementService = Depends(get_settlement_service),
) -> SettlementResponse:
    draw = DrawResult(
        lottery_id=payload.lottery_id,
        family=payload.family,
        winning_number=payload.winning_number,
        draw_date=payload.draw_date,
    )
    try:
        outcome = service.settle_draw(draw)
    except (DomainValidationError, QueryFailure) as exc:
        raise translate_error(exc) from exc

    return SettlementResponse(
        draw_id=outcome.draw.id,
        lottery_id=outcome.draw.lottery_id,
        family=outcome.draw.family,
        winning_number=outcome.draw.winning_number,
        draw_date=outcome.draw.draw_date,
        evaluated=outcome.evaluated,
        winners_marked=outcome.winners_marked,
        losers_marked=outcome.losers_marked,
        already_settled=outcome.already_settled,
        total_paid=to_minor_unit(outcome.draw.total_paid),
        total_raised=to_minor_unit(outcome.draw.total_raised),
        configuration_gaps=list(outcome.configuration_gaps),
    )


@router.post("/bet-items/paid", response_model=CountResponse, summary="Mark winning items as paid")
def mark_paid(
    payload: MarkPaidRequest,
    service: SettlementService = Depends(get_settlement_service),
) -> CountResponse:
    try:
        return CountResponse(count=service.mark_paid(payload.ids))
    except (DomainValidationError, QueryFailure) as exc:
        raise translate_error(exc) from exc


@router.post("/bets/{bet_id}/cancel", response_model=CountResponse, summary="Cancel a bet and its open items")
def cancel_bet(
    bet_id: str,
    service: SettlementService = Depends(get_settlement_service),
) -> CountResponse:
    try:
        return CountResponse(count=service.cancel_bet(bet_id))
    except (DomainValidationError, QueryFailure) as exc:
        raise translate_error(exc) from exc
