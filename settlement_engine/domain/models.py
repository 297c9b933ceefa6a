from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0")


class LotteryFamily(str, Enum):
    CLASSIC = "classic"
    ADJACENCY = "adjacency"
    COMBINATION = "combination"


class BetStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class ItemStatus(str, Enum):
    ACTIVE = "active"
    WINNER = "winner"
    LOSER = "loser"
    CANCELLED = "cancelled"
    PAID = "paid"


# Items whose payout counts towards prize totals.
PRIZE_STATUSES = frozenset({ItemStatus.WINNER, ItemStatus.PAID})


class ResellerRank(str, Enum):
    DISTRIBUTOR = "distributor"
    AGENCY = "agency"
    POINT_OF_SALE = "point_of_sale"


@dataclass(slots=True, frozen=True)
class Bet:
    id: str
    reseller_id: str
    amount: Decimal
    status: BetStatus = BetStatus.ACTIVE
    created_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class BetItem:
    id: str
    bet_id: str
    reseller_id: str
    family: LotteryFamily
    lottery_id: str
    amount: Decimal
    status: ItemStatus = ItemStatus.ACTIVE
    selection: str | None = None
    combination_key: str | None = None
    numbers: tuple[int, ...] = ()
    prize: Decimal | None = None
    payout: Decimal | None = None
    created_at: datetime | None = None
    lottery_name: str | None = None


@dataclass(slots=True, frozen=True)
class PrizeEntry:
    lottery_id: str
    number: str
    multiplier: Decimal
    animal_name: str | None = None


PrizeTable = Mapping[str, PrizeEntry]


@dataclass(slots=True, frozen=True)
class DrawResult:
    lottery_id: str
    family: LotteryFamily
    winning_number: str
    draw_date: date
    id: str | None = None
    total_paid: Decimal = ZERO
    total_raised: Decimal = ZERO
    winners_count: int = 0


@dataclass(slots=True, frozen=True)
class Reseller:
    id: str
    name: str
    rank: ResellerRank
    parent_id: str | None = None
    share_on_sales: Decimal = ZERO
    share_on_profits: Decimal = ZERO
    is_active: bool = True


def as_decimal(value: object) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)  # type: ignore[arg-type]


def to_minor_unit(value: Decimal) -> Decimal:
    """Round a monetary figure for display only."""
    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def build_prize_table(entries: list[PrizeEntry]) -> dict[str, PrizeEntry]:
    return {entry.number.strip(): entry for entry in entries}
