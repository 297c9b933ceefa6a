"""Winner classification and payout rules for each lottery family."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from .errors import DomainValidationError
from .models import ZERO, BetItem, DrawResult, LotteryFamily, PrizeEntry

ADJACENCY_EXACT_MULTIPLIER = Decimal("70")
ADJACENCY_NEIGHBOUR_MULTIPLIER = Decimal("5")


@dataclass(slots=True, frozen=True)
class WinnerDecision:
    is_winner: bool
    multiplier: Decimal
    payout: Decimal
    label: str = ""
    gap: str | None = None


def _loser(gap: str | None = None) -> WinnerDecision:
    return WinnerDecision(is_winner=False, multiplier=ZERO, payout=ZERO, gap=gap)


def format_multiplier(multiplier: Decimal) -> str:
    return f"x{format(multiplier.normalize(), 'f')}"


def evaluate_classic(
    item: BetItem,
    draw: DrawResult,
    prize_table: Mapping[str, PrizeEntry] | None = None,
) -> WinnerDecision:
    winning = draw.winning_number.strip()
    if (item.selection or "").strip() != winning:
        return _loser()

    entry = (prize_table or {}).get(winning)
    if entry is None:
        return _loser(gap=f"no prize multiplier for number {winning} in lottery {draw.lottery_id}")

    label = f"{entry.number} {entry.animal_name} {format_multiplier(entry.multiplier)}"
    if not entry.animal_name:
        label = f"{entry.number} {format_multiplier(entry.multiplier)}"
    return WinnerDecision(
        is_winner=True,
        multiplier=entry.multiplier,
        payout=item.amount * entry.multiplier,
        label=label,
    )


def normalize_two_digit(value: object) -> str | None:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return f"{number % 100:02d}"


def adjacent_numbers(winning: str) -> tuple[str, ...]:
    """Neighbours of a two-digit winning number; there is no wrap at 00 or 99."""
    number = int(winning)
    neighbours: list[str] = []
    if number > 0:
        neighbours.append(f"{number - 1:02d}")
    if number < 99:
        neighbours.append(f"{number + 1:02d}")
    return tuple(neighbours)


def evaluate_adjacency(
    item: BetItem,
    draw: DrawResult,
    prize_table: Mapping[str, PrizeEntry] | None = None,
) -> WinnerDecision:
    winning = normalize_two_digit(draw.winning_number)
    if winning is None:
        return _loser(gap=f"winning number {draw.winning_number!r} of lottery {draw.lottery_id} is not numeric")

    selected = normalize_two_digit(item.selection)
    if selected is None:
        return _loser(gap=f"bet item {item.id} has no numeric selection")

    if selected == winning:
        multiplier = ADJACENCY_EXACT_MULTIPLIER
        label = f"Exact {selected} {format_multiplier(multiplier)}"
    elif selected in adjacent_numbers(winning):
        multiplier = ADJACENCY_NEIGHBOUR_MULTIPLIER
        label = f"Adjacent {selected} {format_multiplier(multiplier)}"
    else:
        return _loser()

    return WinnerDecision(
        is_winner=True,
        multiplier=multiplier,
        payout=item.amount * multiplier,
        label=label,
    )


def normalize_combination_key(key: str) -> str:
    parts = [part.strip() for part in key.strip().split("-")]
    if parts and all(part.isdigit() for part in parts):
        return "-".join(f"{int(part):02d}" for part in parts)
    return key.strip()


def combination_key(item: BetItem) -> str:
    if item.combination_key:
        return normalize_combination_key(item.combination_key)
    return "-".join(f"{int(number):02d}" for number in item.numbers)


def evaluate_combination(
    item: BetItem,
    draw: DrawResult,
    prize_table: Mapping[str, PrizeEntry] | None = None,
) -> WinnerDecision:
    key = combination_key(item)
    if not key or key != normalize_combination_key(draw.winning_number):
        return _loser()

    if item.prize is None:
        return _loser(gap=f"bet item {item.id} matched combination {key} but has no stored prize")

    multiplier = item.prize / item.amount if item.amount else ZERO
    return WinnerDecision(
        is_winner=True,
        multiplier=multiplier,
        payout=item.prize,
        label=f"Combination {key}",
    )


Rule = Callable[[BetItem, DrawResult, "Mapping[str, PrizeEntry] | None"], WinnerDecision]

RULES: dict[LotteryFamily, Rule] = {
    LotteryFamily.CLASSIC: evaluate_classic,
    LotteryFamily.ADJACENCY: evaluate_adjacency,
    LotteryFamily.COMBINATION: evaluate_combination,
}


def determine_winner(
    item: BetItem,
    draw: DrawResult,
    prize_table: Mapping[str, PrizeEntry] | None = None,
) -> WinnerDecision:
    if item.family != draw.family:
        raise DomainValidationError(
            f"bet item {item.id} belongs to {item.family.value}, draw is {draw.family.value}"
        )
    return RULES[draw.family](item, draw, prize_table)
