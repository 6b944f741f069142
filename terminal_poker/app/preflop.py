"""Heads-up starting hand table used by the rule-based bot.

Every two-card hand falls into one of five tiers. Pairs are looked up by
rank; unpaired hands by (high, low) rank in a suited or an offsuit grid. A
tier maps to a base win-rate estimate and :func:`preflop_strength` adds a
kicker bonus of at most 0.05 so hands inside a tier stay ordered.

========  ==============================================================
Tier      Hands
========  ==============================================================
Premium   QQ+, AKs, AKo
Strong    TT-JJ, ATs-AQs, KJs-KQs, AQo
Playable  66-99, A2s-A9s, K9s-KTs, QTs-QJs, JTs, J9s, T8s-T9s, 97s-98s,
          86s-87s, ATo-AJo, KQo
Marginal  22-55, K2s-K8s, Q8s-Q9s, J8s, T7s, 96s, 85s, 75s-76s, 64s-65s,
          54s, 43s, offsuit connectors 43o-JTo, QTo-QJo, KTo-KJo, A5o-A9o
Trash     everything else
========  ==============================================================
"""
from __future__ import annotations

from enum import IntEnum
from typing import Sequence

from .cards import Card


class PreflopTier(IntEnum):
    TRASH = 0
    MARGINAL = 1
    PLAYABLE = 2
    STRONG = 3
    PREMIUM = 4

    @property
    def base_strength(self) -> float:
        return _BASE_STRENGTH[self]


_BASE_STRENGTH = {
    PreflopTier.PREMIUM: 0.90,
    PreflopTier.STRONG: 0.75,
    PreflopTier.PLAYABLE: 0.60,
    PreflopTier.MARGINAL: 0.45,
    PreflopTier.TRASH: 0.25,
}

P = PreflopTier.PREMIUM
S = PreflopTier.STRONG
L = PreflopTier.PLAYABLE
M = PreflopTier.MARGINAL
T = PreflopTier.TRASH
_ = None

# Index 0 = deuce ... 12 = ace.
_PAIRS = (M, M, M, M, L, L, L, L, S, S, P, P, P)

# _SUITED[low][high], only high > low is used.
_SUITED = (
    #  2  3  4  5  6  7  8  9  T  J  Q  K  A
    (_, T, T, T, T, T, T, T, T, T, T, M, L),  # 2
    (_, _, M, T, T, T, T, T, T, T, T, M, L),  # 3
    (_, _, _, M, M, T, T, T, T, T, T, M, L),  # 4
    (_, _, _, _, M, M, M, T, T, T, T, M, L),  # 5
    (_, _, _, _, _, M, L, M, T, T, T, M, L),  # 6
    (_, _, _, _, _, _, L, L, M, T, T, M, L),  # 7
    (_, _, _, _, _, _, _, L, L, M, M, M, L),  # 8
    (_, _, _, _, _, _, _, _, L, L, M, L, L),  # 9
    (_, _, _, _, _, _, _, _, _, L, L, L, S),  # T
    (_, _, _, _, _, _, _, _, _, _, L, S, S),  # J
    (_, _, _, _, _, _, _, _, _, _, _, S, S),  # Q
    (_, _, _, _, _, _, _, _, _, _, _, _, P),  # K
    (_, _, _, _, _, _, _, _, _, _, _, _, _),  # A
)

# _OFFSUIT[high][low], only high > low is used.
_OFFSUIT = (
    #  2  3  4  5  6  7  8  9  T  J  Q  K  A
    (_, _, _, _, _, _, _, _, _, _, _, _, _),  # 2
    (T, _, _, _, _, _, _, _, _, _, _, _, _),  # 3
    (T, M, _, _, _, _, _, _, _, _, _, _, _),  # 4
    (T, T, M, _, _, _, _, _, _, _, _, _, _),  # 5
    (T, T, T, M, _, _, _, _, _, _, _, _, _),  # 6
    (T, T, T, T, M, _, _, _, _, _, _, _, _),  # 7
    (T, T, T, T, T, M, _, _, _, _, _, _, _),  # 8
    (T, T, T, T, T, T, M, _, _, _, _, _, _),  # 9
    (T, T, T, T, T, T, T, M, _, _, _, _, _),  # T
    (T, T, T, T, T, T, T, T, M, _, _, _, _),  # J
    (T, T, T, T, T, T, T, T, M, M, _, _, _),  # Q
    (T, T, T, T, T, T, T, T, M, M, L, _, _),  # K
    (T, T, T, M, M, M, M, M, L, L, S, P, _),  # A
)


def classify_preflop(cards: Sequence[Card]) -> PreflopTier:
    if len(cards) != 2:
        raise ValueError("classify_preflop requires exactly 2 cards")

    first, second = cards
    if first.rank == second.rank:
        return _PAIRS[first.rank - 2]

    high, low = max(first.rank, second.rank) - 2, min(first.rank, second.rank) - 2
    if first.suit == second.suit:
        return _SUITED[low][high]
    return _OFFSUIT[high][low]


def preflop_strength(cards: Sequence[Card]) -> float:
    """Estimated strength in [0, 1]: tier base plus a small kicker bonus."""
    tier = classify_preflop(cards)
    high = max(card.rank for card in cards)
    low = min(card.rank for card in cards)
    kicker_bonus = (high - 2) / 12.0 * 0.04 + (low - 2) / 12.0 * 0.01
    return min(1.0, tier.base_strength + kicker_bonus)
