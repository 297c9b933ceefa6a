from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from settlement_engine.domain import DrawResult, LotteryFamily, determine_winner
from settlement_engine.storage.repository import LedgerRepository, check_same_winning_number

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SettlementOutcome:
    draw: DrawResult
    evaluated: int
    winners_marked: int
    losers_marked: int
    already_settled: int
    total_paid: Decimal
    configuration_gaps: tuple[str, ...] = ()

    @property
    def is_noop(self) -> bool:
        return self.winners_marked == 0 and self.losers_marked == 0


class SettlementService:
    def __init__(self, repo: LedgerRepository) -> None:
        self.repo = repo

    def settle_draw(self, draw: DrawResult) -> SettlementOutcome:
        """Classify every still-active item of the draw and persist the result.

        Items already in a terminal state are never selected, and the writes
        only touch rows that are still active, so settling the same draw again
        (or concurrently) marks nothing twice. A draw already recorded with a
        different winning number is rejected before anything is written.

        The draw totals are read and the draw record is upserted in two
        separate sessions. Items of the draw day written in between by
        another request are reflected only on the next settlement run.
        """
        recorded = self.repo.find_draw_result(draw.lottery_id, draw.draw_date)
        if recorded is not None:
            check_same_winning_number(recorded.winning_number, draw)

        items = self.repo.list_settleable_items(draw)
        prize_table = self.repo.get_prize_table(draw.lottery_id) if draw.family == LotteryFamily.CLASSIC else {}

        winner_ids: list[str] = []
        payouts: list[Decimal] = []
        labels: list[str] = []
        loser_ids: list[str] = []
        gaps: set[str] = set()
        for item in items:
            decision = determine_winner(item, draw, prize_table)
            if decision.gap:
                gaps.add(decision.gap)
            if decision.is_winner:
                winner_ids.append(item.id)
                payouts.append(decision.payout)
                labels.append(decision.label)
            else:
                loser_ids.append(item.id)

        for gap in sorted(gaps):
            logger.warning("configuration gap in draw %s/%s, item settled as loser: %s", draw.lottery_id, draw.draw_date, gap)

        winners_marked = self.repo.mark_winners(winner_ids, payouts, labels)
        losers_marked = self.repo.mark_losers(loser_ids)
        already_settled = len(items) - winners_marked - losers_marked

        if not items:
            logger.info("draw %s/%s has no active bet items, nothing to settle", draw.lottery_id, draw.draw_date)
        elif already_settled:
            logger.info(
                "%d bet items of draw %s/%s were settled by another run, left untouched",
                already_settled,
                draw.lottery_id,
                draw.draw_date,
            )

        saved = self.repo.save_draw_result(draw, self.repo.draw_totals(draw))
        logger.info(
            "settled draw %s/%s (%s): %d winners, %d losers, total paid %s",
            draw.lottery_id,
            draw.draw_date,
            draw.winning_number,
            winners_marked,
            losers_marked,
            saved.total_paid,
        )
        return SettlementOutcome(
            draw=saved,
            evaluated=len(items),
            winners_marked=winners_marked,
            losers_marked=losers_marked,
            already_settled=already_settled,
            total_paid=saved.total_paid,
            configuration_gaps=tuple(sorted(gaps)),
        )

    def mark_paid(self, item_ids: Sequence[str]) -> int:
        paid = self.repo.mark_paid(item_ids)
        if paid < len(item_ids):
            logger.info("%d of %d items were not winners awaiting payment", len(item_ids) - paid, len(item_ids))
        return paid

    def cancel_bet(self, bet_id: str) -> int:
        cancelled = self.repo.cancel_bet(bet_id)
        logger.info("cancelled bet %s, %d active items cancelled", bet_id, cancelled)
        return cancelled
