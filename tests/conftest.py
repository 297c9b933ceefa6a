from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from itertools import count

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from settlement_engine.storage import models
from settlement_engine.storage.database import Base
from settlement_engine.storage.repository import LedgerRepository

DRAW_DAY = datetime(2024, 5, 1, 10, 0, 0)


class LedgerBuilder:
    """Seeds resellers, lotteries and bet items into a test database."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._ids = count(1)

    def reseller(self, reseller_id, rank, parent_id=None, share_on_sales="0", share_on_profits="0"):
        with self._session_factory() as db:
            db.add(
                models.Reseller(
                    id=reseller_id,
                    name=reseller_id.upper(),
                    rank=rank,
                    parent_id=parent_id,
                    share_on_sales=Decimal(share_on_sales),
                    share_on_profits=Decimal(share_on_profits),
                )
            )
            db.commit()
        return reseller_id

    def lottery(self, lottery_id, family, prizes=None):
        with self._session_factory() as db:
            db.add(models.Lottery(id=lottery_id, name=f"Lottery {lottery_id}", family=family))
            for number, (animal_name, multiplier) in (prizes or {}).items():
                db.add(
                    models.Prize(
                        lottery_id=lottery_id,
                        number=number,
                        animal_name=animal_name,
                        multiplier=Decimal(multiplier),
                    )
                )
            db.commit()
        return lottery_id

    def item(
        self,
        *,
        reseller_id,
        lottery_id,
        family,
        amount,
        selection=None,
        numbers=None,
        combination_key=None,
        prize=None,
        payout=None,
        status="active",
        created_at=DRAW_DAY,
    ):
        sequence = next(self._ids)
        bet_id = f"bet-{sequence}"
        item_id = f"item-{sequence}"
        with self._session_factory() as db:
            db.add(
                models.Bet(
                    id=bet_id,
                    reseller_id=reseller_id,
                    amount=Decimal(amount),
                    status="cancelled" if status == "cancelled" else "active",
                    created_at=created_at,
                )
            )
            db.add(
                models.BetItem(
                    id=item_id,
                    bet_id=bet_id,
                    reseller_id=reseller_id,
                    family=family,
                    lottery_id=lottery_id,
                    selection=selection,
                    numbers=numbers,
                    combination_key=combination_key,
                    amount=Decimal(amount),
                    prize=Decimal(prize) if prize is not None else None,
                    payout=Decimal(payout) if payout is not None else None,
                    status=status,
                    created_at=created_at,
                )
            )
            db.commit()
        return item_id

    def item_row(self, item_id):
        with self._session_factory() as db:
            return db.get(models.BetItem, item_id)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def repo(session_factory) -> LedgerRepository:
    return LedgerRepository(session_factory)


@pytest.fixture
def ledger(session_factory) -> LedgerBuilder:
    return LedgerBuilder(session_factory)
