from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_engine.storage.database import Base


def _uuid() -> str:
    return str(uuid4())


class Reseller(Base):
    __tablename__ = "resellers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    rank: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    parent_id: Mapped[str | None] = mapped_column(ForeignKey("resellers.id"), nullable=True, index=True)
    share_on_sales: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    share_on_profits: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Lottery(Base):
    __tablename__ = "lotteries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    family: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    prizes: Mapped[list["Prize"]] = relationship(back_populates="lottery", cascade="all, delete-orphan")


class Prize(Base):
    __tablename__ = "prizes"
    __table_args__ = (UniqueConstraint("lottery_id", "number", name="uq_prizes_lottery_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    lottery_id: Mapped[str] = mapped_column(ForeignKey("lotteries.id"), nullable=False, index=True)
    number: Mapped[str] = mapped_column(String(8), nullable=False)
    animal_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    multiplier: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    lottery: Mapped[Lottery] = relationship(back_populates="prizes")


class Bet(Base):
    __tablename__ = "bets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    reseller_id: Mapped[str] = mapped_column(ForeignKey("resellers.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now, index=True)

    items: Mapped[list["BetItem"]] = relationship(back_populates="bet", cascade="all, delete-orphan")


class BetItem(Base):
    __tablename__ = "bet_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    bet_id: Mapped[str] = mapped_column(ForeignKey("bets.id"), nullable=False, index=True)
    reseller_id: Mapped[str] = mapped_column(ForeignKey("resellers.id"), nullable=False, index=True)
    family: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    lottery_id: Mapped[str] = mapped_column(ForeignKey("lotteries.id"), nullable=False, index=True)
    selection: Mapped[str | None] = mapped_column(String(32), nullable=True)
    combination_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    numbers: Mapped[list | None] = mapped_column(JSON, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    prize: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    payout: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    prize_label: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now, index=True)

    bet: Mapped[Bet] = relationship(back_populates="items")
    lottery: Mapped[Lottery] = relationship()


class DrawResult(Base):
    __tablename__ = "draw_results"
    __table_args__ = (UniqueConstraint("lottery_id", "draw_date", name="uq_draw_results_lottery_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    lottery_id: Mapped[str] = mapped_column(ForeignKey("lotteries.id"), nullable=False, index=True)
    family: Mapped[str] = mapped_column(String(32), nullable=False)
    winning_number: Mapped[str] = mapped_column(String(64), nullable=False)
    draw_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    total_paid: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total_raised: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    winners_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    settled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)


class ReportSnapshot(Base):
    __tablename__ = "report_snapshots"

    id: Mapped[str] = mapped_column(String(96), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    window_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    window_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)
    generated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
