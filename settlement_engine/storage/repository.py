from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from settlement_engine.domain import models as domain
from settlement_engine.domain.errors import DomainValidationError, QueryFailure
from settlement_engine.domain.reports import ReportSnapshot as ReportData
from settlement_engine.domain.windows import TimeWindow, end_of_day, start_of_day
from settlement_engine.storage.models import Bet, BetItem, DrawResult, Lottery, Prize, Reseller, ReportSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ACTIVE = domain.ItemStatus.ACTIVE.value
_PRIZE_STATUSES = [status.value for status in domain.PRIZE_STATUSES]


@dataclass(slots=True, frozen=True)
class DrawTotals:
    total_paid: Decimal
    total_raised: Decimal
    winners_count: int


class LedgerRepository:
    """Reads and guarded writes over the bet ledger.

    Every call runs in its own session and is retried once when the store
    reports an operational error.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def _run(self, description: str, operation: Callable[[Session], T]) -> T:
        for attempt in (1, 2):
            try:
                with self._session_factory() as db:
                    return operation(db)
            except OperationalError as exc:
                if attempt == 1:
                    logger.warning("%s failed, retrying once: %s", description, exc)
                    continue
                logger.error("%s failed after retry: %s", description, exc)
                raise QueryFailure(f"{description} failed: {exc}") from exc
            except SQLAlchemyError as exc:
                logger.error("%s failed: %s", description, exc)
                raise QueryFailure(f"{description} failed: {exc}") from exc
        raise AssertionError("unreachable")

    def list_bet_items(
        self,
        window: TimeWindow,
        *,
        reseller_ids: Sequence[str] | None = None,
        family: domain.LotteryFamily | None = None,
    ) -> list[domain.BetItem]:
        if reseller_ids is not None and not reseller_ids:
            return []

        def operation(db: Session) -> list[domain.BetItem]:
            query = (
                select(BetItem, Lottery.name)
                .join(Lottery, Lottery.id == BetItem.lottery_id)
                .where(BetItem.created_at >= window.start, BetItem.created_at <= window.end)
                .order_by(BetItem.created_at, BetItem.id)
            )
            if reseller_ids is not None:
                query = query.where(BetItem.reseller_id.in_(list(reseller_ids)))
            if family is not None:
                query = query.where(BetItem.family == family.value)
            return [_to_item(row, lottery_name) for row, lottery_name in db.execute(query).all()]

        return self._run("list bet items", operation)

    def list_settleable_items(self, draw: domain.DrawResult) -> list[domain.BetItem]:
        def operation(db: Session) -> list[domain.BetItem]:
            rows = db.scalars(
                select(BetItem)
                .where(
                    BetItem.family == draw.family.value,
                    BetItem.lottery_id == draw.lottery_id,
                    BetItem.status == _ACTIVE,
                    BetItem.created_at >= start_of_day(draw.draw_date),
                    BetItem.created_at <= end_of_day(draw.draw_date),
                )
                .order_by(BetItem.created_at, BetItem.id)
            ).all()
            return [_to_item(row) for row in rows]

        return self._run("list settleable items", operation)

    def list_resellers(self, reseller_ids: Sequence[str] | None = None) -> list[domain.Reseller]:
        def operation(db: Session) -> list[domain.Reseller]:
            query = select(Reseller).order_by(Reseller.id)
            if reseller_ids is not None:
                query = query.where(Reseller.id.in_(list(reseller_ids)))
            return [
                domain.Reseller(
                    id=row.id,
                    name=row.name,
                    rank=domain.ResellerRank(row.rank),
                    parent_id=row.parent_id,
                    share_on_sales=domain.as_decimal(row.share_on_sales),
                    share_on_profits=domain.as_decimal(row.share_on_profits),
                    is_active=row.is_active,
                )
                for row in db.scalars(query).all()
            ]

        return self._run("list resellers", operation)

    def get_prize_table(self, lottery_id: str) -> dict[str, domain.PrizeEntry]:
        def operation(db: Session) -> dict[str, domain.PrizeEntry]:
            rows = db.scalars(select(Prize).where(Prize.lottery_id == lottery_id)).all()
            return domain.build_prize_table(
                [
                    domain.PrizeEntry(
                        lottery_id=row.lottery_id,
                        number=row.number,
                        multiplier=domain.as_decimal(row.multiplier),
                        animal_name=row.animal_name,
                    )
                    for row in rows
                ]
            )

        return self._run("load prize table", operation)

    def animal_names(self) -> dict[str, str]:
        def operation(db: Session) -> dict[str, str]:
            rows = db.execute(
                select(Prize.number, Prize.animal_name).where(Prize.animal_name.is_not(None)).order_by(Prize.id)
            ).all()
            return {row.number: row.animal_name for row in rows}

        return self._run("load animal names", operation)

    def mark_winners(self, ids: Sequence[str], prizes: Sequence[Decimal], descriptions: Sequence[str]) -> int:
        """Flag winners with their payout and label; only rows still active are touched.

        All rows are written in one transaction, so a batch is either fully
        applied or not at all.
        """
        if not len(ids) == len(prizes) == len(descriptions):
            raise DomainValidationError("ids, prizes and descriptions must have the same length")
        if not ids:
            return 0

        def operation(db: Session) -> int:
            affected = 0
            for item_id, prize, description in zip(ids, prizes, descriptions):
                result = db.execute(
                    update(BetItem)
                    .where(BetItem.id == item_id, BetItem.status == _ACTIVE)
                    .values(status=domain.ItemStatus.WINNER.value, payout=prize, prize_label=description)
                    .execution_options(synchronize_session=False)
                )
                affected += result.rowcount
            db.commit()
            return affected

        return self._run("mark winners", operation)

    def mark_losers(self, ids: Sequence[str]) -> int:
        return self._transition(ids, _ACTIVE, domain.ItemStatus.LOSER.value, "mark losers", payout=0)

    def mark_paid(self, ids: Sequence[str]) -> int:
        return self._transition(ids, domain.ItemStatus.WINNER.value, domain.ItemStatus.PAID.value, "mark paid")

    def _transition(self, ids: Sequence[str], from_status: str, to_status: str, description: str, **values: Any) -> int:
        if not ids:
            return 0

        def operation(db: Session) -> int:
            result = db.execute(
                update(BetItem)
                .where(BetItem.id.in_(list(ids)), BetItem.status == from_status)
                .values(status=to_status, **values)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount

        return self._run(description, operation)

    def cancel_bet(self, bet_id: str) -> int:
        """Cancel a bet together with all of its items.

        A bet with any item already settled or paid cannot be cancelled.
        """

        def operation(db: Session) -> int:
            bet = db.get(Bet, bet_id)
            if bet is None:
                raise DomainValidationError(f"bet {bet_id} not found")
            if bet.status == domain.BetStatus.CANCELLED.value:
                return 0
            settled = db.scalars(
                select(BetItem.id).where(BetItem.bet_id == bet_id, BetItem.status != _ACTIVE)
            ).all()
            if settled:
                raise DomainValidationError(f"bet {bet_id} has settled items and cannot be cancelled")
            bet.status = domain.BetStatus.CANCELLED.value
            result = db.execute(
                update(BetItem)
                .where(BetItem.bet_id == bet_id, BetItem.status == _ACTIVE)
                .values(status=domain.ItemStatus.CANCELLED.value)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount

        return self._run("cancel bet", operation)

    def draw_totals(self, draw: domain.DrawResult) -> DrawTotals:
        def operation(db: Session) -> DrawTotals:
            row = db.execute(
                select(
                    func.coalesce(
                        func.sum(case((BetItem.status.in_(_PRIZE_STATUSES), BetItem.payout), else_=0)), 0
                    ),
                    func.coalesce(
                        func.sum(
                            case((BetItem.status != domain.ItemStatus.CANCELLED.value, BetItem.amount), else_=0)
                        ),
                        0,
                    ),
                    func.coalesce(func.sum(case((BetItem.status.in_(_PRIZE_STATUSES), 1), else_=0)), 0),
                ).where(
                    BetItem.family == draw.family.value,
                    BetItem.lottery_id == draw.lottery_id,
                    BetItem.created_at >= start_of_day(draw.draw_date),
                    BetItem.created_at <= end_of_day(draw.draw_date),
                )
            ).one()
            return DrawTotals(
                total_paid=domain.as_decimal(row[0]),
                total_raised=domain.as_decimal(row[1]),
                winners_count=int(row[2] or 0),
            )

        return self._run("compute draw totals", operation)

    def find_draw_result(self, lottery_id: str, draw_date: date) -> domain.DrawResult | None:
        def operation(db: Session) -> domain.DrawResult | None:
            row = _draw_row(db, lottery_id, draw_date)
            if row is None:
                return None
            return domain.DrawResult(
                id=row.id,
                lottery_id=row.lottery_id,
                family=domain.LotteryFamily(row.family),
                winning_number=row.winning_number,
                draw_date=row.draw_date,
                total_paid=domain.as_decimal(row.total_paid),
                total_raised=domain.as_decimal(row.total_raised),
                winners_count=row.winners_count,
            )

        return self._run("load draw result", operation)

    def save_draw_result(self, draw: domain.DrawResult, totals: DrawTotals) -> domain.DrawResult:
        def operation(db: Session) -> domain.DrawResult:
            row = _draw_row(db, draw.lottery_id, draw.draw_date)
            if row is not None:
                check_same_winning_number(row.winning_number, draw)
            if row is None:
                row = DrawResult(lottery_id=draw.lottery_id, draw_date=draw.draw_date)
                db.add(row)
            row.family = draw.family.value
            row.winning_number = draw.winning_number
            row.total_paid = totals.total_paid
            row.total_raised = totals.total_raised
            row.winners_count = totals.winners_count
            row.settled_at = datetime.now()
            db.commit()
            return domain.DrawResult(
                id=row.id,
                lottery_id=row.lottery_id,
                family=domain.LotteryFamily(row.family),
                winning_number=row.winning_number,
                draw_date=row.draw_date,
                total_paid=totals.total_paid,
                total_raised=totals.total_raised,
                winners_count=totals.winners_count,
            )

        return self._run("save draw result", operation)

    def save_report(self, report: ReportData) -> None:
        def operation(db: Session) -> None:
            db.merge(
                ReportSnapshot(
                    id=report.id,
                    kind=report.kind.value,
                    title=report.title,
                    window_start=report.window.start,
                    window_end=report.window.end,
                    data=report.to_payload(),
                    generated_at=report.generated_at,
                )
            )
            db.commit()

        self._run("save report", operation)

    def get_report(self, report_id: str) -> dict[str, Any] | None:
        def operation(db: Session) -> dict[str, Any] | None:
            row = db.get(ReportSnapshot, report_id)
            return _report_to_dict(row) if row is not None else None

        return self._run("load report", operation)

    def list_reports(self, kind: str | None = None) -> list[dict[str, Any]]:
        def operation(db: Session) -> list[dict[str, Any]]:
            query = select(ReportSnapshot).order_by(ReportSnapshot.generated_at.desc(), ReportSnapshot.id)
            if kind is not None:
                query = query.where(ReportSnapshot.kind == kind)
            return [_report_to_dict(row) for row in db.scalars(query).all()]

        return self._run("list reports", operation)

    def delete_reports_before(self, cutoff: datetime) -> int:
        def operation(db: Session) -> int:
            result = db.execute(delete(ReportSnapshot).where(ReportSnapshot.generated_at < cutoff))
            db.commit()
            return result.rowcount

        return self._run("delete old reports", operation)


def _draw_row(db: Session, lottery_id: str, draw_date: date) -> DrawResult | None:
    return db.scalars(
        select(DrawResult).where(DrawResult.lottery_id == lottery_id, DrawResult.draw_date == draw_date)
    ).first()


def check_same_winning_number(recorded: str, draw: domain.DrawResult) -> None:
    """Reject a draw whose winning number differs from the one already recorded."""
    if recorded.strip() != draw.winning_number.strip():
        raise DomainValidationError(
            f"draw {draw.lottery_id}/{draw.draw_date} was settled with {recorded}, "
            f"cannot settle it again with {draw.winning_number}"
        )


def _to_item(row: BetItem, lottery_name: str | None = None) -> domain.BetItem:
    return domain.BetItem(
        id=row.id,
        bet_id=row.bet_id,
        reseller_id=row.reseller_id,
        family=domain.LotteryFamily(row.family),
        lottery_id=row.lottery_id,
        amount=domain.as_decimal(row.amount),
        status=domain.ItemStatus(row.status),
        selection=row.selection,
        combination_key=row.combination_key,
        numbers=tuple(int(number) for number in row.numbers or ()),
        prize=domain.as_decimal(row.prize) if row.prize is not None else None,
        payout=domain.as_decimal(row.payout) if row.payout is not None else None,
        created_at=row.created_at,
        lottery_name=lottery_name,
    )


def _report_to_dict(row: ReportSnapshot) -> dict[str, Any]:
    return {
        "id": row.id,
        "kind": row.kind,
        "title": row.title,
        "start_date": row.window_start.isoformat(),
        "end_date": row.window_end.isoformat(),
        "generated_at": row.generated_at.isoformat(),
        "data": row.data,
    }
