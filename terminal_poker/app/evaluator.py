from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import dataclass
from enum import IntEnum
from typing import Sequence

from .cards import RANK_NAMES, Card


class HandCategory(IntEnum):
    HIGH_CARD = 0
    ONE_PAIR = 1
    TWO_PAIR = 2
    THREE_OF_A_KIND = 3
    STRAIGHT = 4
    FLUSH = 5
    FULL_HOUSE = 6
    FOUR_OF_A_KIND = 7
    STRAIGHT_FLUSH = 8

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").lower()


def _plural(rank: int) -> str:
    name = RANK_NAMES[rank]
    return f"{name}es" if name == "Six" else f"{name}s"


@dataclass(frozen=True, order=True)
class HandValue:
    """Best five-card hand: compares by category, then tiebreak ranks."""

    category: HandCategory
    tiebreak: tuple[int, ...]

    def describe(self) -> str:
        top = self.tiebreak[0]
        category = self.category
        if category == HandCategory.STRAIGHT_FLUSH:
            if top == 14:
                return "Royal flush"
            return f"{RANK_NAMES[top]}-high straight flush"
        if category == HandCategory.FOUR_OF_A_KIND:
            return f"Four of a kind, {_plural(top)}"
        if category == HandCategory.FULL_HOUSE:
            return f"Full house, {_plural(top)} full of {_plural(self.tiebreak[1])}"
        if category == HandCategory.FLUSH:
            return f"{RANK_NAMES[top]}-high flush"
        if category == HandCategory.STRAIGHT:
            return f"{RANK_NAMES[top]}-high straight"
        if category == HandCategory.THREE_OF_A_KIND:
            return f"Three of a kind, {_plural(top)}"
        if category == HandCategory.TWO_PAIR:
            return f"Two pair, {_plural(top)} and {_plural(self.tiebreak[1])}"
        if category == HandCategory.ONE_PAIR:
            return f"Pair of {_plural(top)}"
        return f"{RANK_NAMES[top]} high"


def evaluate(cards: Sequence[Card]) -> HandValue:
    """Rank the best five-card hand out of 5, 6 or 7 cards."""
    if not 5 <= len(cards) <= 7:
        raise ValueError(f"evaluate() needs 5 to 7 cards, got {len(cards)}")
    if len(set(cards)) != len(cards):
        raise ValueError("evaluate() received duplicate cards")

    best: HandValue | None = None
    for combo in itertools.combinations(cards, 5):
        value = _rank_five(combo)
        if best is None or value > best:
            best = value
    assert best is not None
    return best


def _rank_five(cards: Sequence[Card]) -> HandValue:
    rank_values = sorted((card.rank for card in cards), reverse=True)
    counts = Counter(rank_values)
    is_flush = len({card.suit for card in cards}) == 1
    straight_high = straight_high_card(rank_values)
    by_count = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)

    if is_flush and straight_high is not None:
        return HandValue(HandCategory.STRAIGHT_FLUSH, (straight_high,))

    if by_count[0][1] == 4:
        return HandValue(HandCategory.FOUR_OF_A_KIND, (by_count[0][0], by_count[1][0]))

    if by_count[0][1] == 3 and by_count[1][1] == 2:
        return HandValue(HandCategory.FULL_HOUSE, (by_count[0][0], by_count[1][0]))

    if is_flush:
        return HandValue(HandCategory.FLUSH, tuple(rank_values))

    if straight_high is not None:
        return HandValue(HandCategory.STRAIGHT, (straight_high,))

    if by_count[0][1] == 3:
        kickers = sorted((rank for rank, _ in by_count[1:]), reverse=True)
        return HandValue(HandCategory.THREE_OF_A_KIND, (by_count[0][0], *kickers))

    if by_count[0][1] == 2 and by_count[1][1] == 2:
        pair_high = max(by_count[0][0], by_count[1][0])
        pair_low = min(by_count[0][0], by_count[1][0])
        return HandValue(HandCategory.TWO_PAIR, (pair_high, pair_low, by_count[2][0]))

    if by_count[0][1] == 2:
        kickers = sorted((rank for rank, _ in by_count[1:]), reverse=True)
        return HandValue(HandCategory.ONE_PAIR, (by_count[0][0], *kickers))

    return HandValue(HandCategory.HIGH_CARD, tuple(rank_values))


def straight_high_card(values: Sequence[int]) -> int | None:
    """Top card of the highest straight in ``values``; the wheel counts as 5."""
    unique = sorted(set(values), reverse=True)
    for idx in range(len(unique) - 4):
        window = unique[idx : idx + 5]
        if window[0] - window[-1] == 4:
            return window[0]

    if {14, 5, 4, 3, 2}.issubset(unique):
        return 5

    return None

