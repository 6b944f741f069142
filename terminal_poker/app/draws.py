from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from .cards import SUITS, Card
from .evaluator import straight_high_card


@dataclass(frozen=True)
class DrawInfo:
    flush_draw: bool = False
    oesd: bool = False
    gutshot: bool = False
    overcards: int = 0
    backdoor_flush: bool = False
    backdoor_straight: bool = False

    @property
    def outs(self) -> int:
        """Clean-ish outs to a flush or straight (combo draws share two cards)."""
        straight_outs = 8 if self.oesd else 4 if self.gutshot else 0
        if self.flush_draw and straight_outs:
            return 9 + straight_outs - 2
        if self.flush_draw:
            return 9
        return straight_outs

    @property
    def is_strong_draw(self) -> bool:
        return self.outs >= 8

    def improvement_equity(self, board_size: int) -> float:
        """Chance of hitting one of ``outs`` with the cards still to come."""
        outs = self.outs
        if outs == 0 or board_size >= 5:
            return 0.0
        unseen = 52 - 2 - board_size
        miss_next = (unseen - outs) / unseen
        if board_size == 3:
            miss_both = miss_next * (unseen - 1 - outs) / (unseen - 1)
            return 1.0 - miss_both
        return 1.0 - miss_next

    def equity_boost(self, street_factor: float) -> float:
        """Heuristic extra strength for weaker draws the outs count ignores."""
        boost = self.overcards * 0.04
        if self.backdoor_flush:
            boost += 0.03
        if self.backdoor_straight:
            boost += 0.02
        return boost * street_factor


def detect_draws(hole_cards: Sequence[Card], board: Sequence[Card]) -> DrawInfo:
    if not board:
        return DrawInfo()

    flush_draw, backdoor_flush = _flush_draws(hole_cards, board)
    oesd, gutshot, backdoor_straight = _straight_draws(hole_cards, board)
    top_board = max(card.rank for card in board)
    return DrawInfo(
        flush_draw=flush_draw,
        oesd=oesd,
        gutshot=gutshot and not oesd,
        overcards=sum(1 for card in hole_cards if card.rank > top_board),
        backdoor_flush=backdoor_flush,
        backdoor_straight=backdoor_straight,
    )


def _flush_draws(hole_cards: Sequence[Card], board: Sequence[Card]) -> tuple[bool, bool]:
    flush_draw = False
    backdoor = False
    for suit in SUITS:
        in_hole = sum(1 for card in hole_cards if card.suit == suit)
        if in_hole == 0:
            continue
        total = in_hole + sum(1 for card in board if card.suit == suit)
        if total == 4 and len(board) < 5:
            flush_draw = True
        elif total == 3 and len(board) == 3:
            backdoor = True
    return flush_draw, backdoor


def _straight_draws(hole_cards: Sequence[Card], board: Sequence[Card]) -> tuple[bool, bool, bool]:
    if len(board) >= 5:
        return False, False, False

    ranks = {card.rank for card in (*hole_cards, *board)}
    hole_ranks = {card.rank for card in hole_cards}
    if 14 in ranks:
        ranks.add(1)
    if 14 in hole_ranks:
        hole_ranks.add(1)
    if straight_high_card([card.rank for card in (*hole_cards, *board)]) is not None:
        return False, False, False

    oesd = gutshot = backdoor = False
    for base in range(1, 11):
        window = range(base, base + 5)
        if not hole_ranks.intersection(window):
            continue
        missing = [value for value in window if value not in ranks]
        if len(missing) == 1:
            gap = missing[0]
            # An end-card gap is only open-ended if the other end can extend:
            # J-Q-K-A and A-2-3-4 are one-ended.
            if gap == base and base + 5 <= 14:
                oesd = True
            elif gap == base + 4 and base >= 2:
                oesd = True
            else:
                gutshot = True
        elif len(missing) == 2 and len(board) == 3:
            backdoor = True
    return oesd, gutshot, backdoor


class TextureClass(str, Enum):
    DRY = "dry"
    MEDIUM = "medium"
    WET = "wet"


@dataclass(frozen=True)
class BoardTexture:
    paired: bool
    flush_possible: bool
    flush_draw_possible: bool
    straight_possible: bool
    connected_pairs: int
    wetness: int

    @property
    def classification(self) -> TextureClass:
        if self.wetness <= 1:
            return TextureClass.DRY
        if self.wetness <= 3:
            return TextureClass.MEDIUM
        return TextureClass.WET

    @property
    def is_wet(self) -> bool:
        return self.classification == TextureClass.WET

    @property
    def is_dry(self) -> bool:
        return self.classification == TextureClass.DRY


def analyze_board_texture(board: Sequence[Card]) -> BoardTexture:
    if not board:
        return BoardTexture(False, False, False, False, 0, 0)

    suit_counts = Counter(card.suit for card in board)
    max_suit = max(suit_counts.values())
    ranks = sorted(card.rank for card in board)
    paired = len(set(ranks)) < len(ranks)

    connected = sum(1 for low, high in zip(ranks, ranks[1:]) if 0 < high - low <= 2)
    unique = set(ranks) | ({1} if 14 in ranks else set())
    straight_possible = any(len(unique.intersection(range(base, base + 5))) >= 3 for base in range(1, 11))

    wetness = connected
    if max_suit >= 3:
        wetness += 2
    elif max_suit == 2:
        wetness += 1
    if paired:
        wetness += 1

    return BoardTexture(
        paired=paired,
        flush_possible=max_suit >= 3,
        flush_draw_possible=max_suit == 2 and len(board) < 5,
        straight_possible=straight_possible,
        connected_pairs=connected,
        wetness=wetness,
    )
