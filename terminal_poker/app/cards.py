from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, Sequence

RANK_ORDER = "23456789TJQKA"
SUITS = "cdhs"
SUIT_SYMBOLS = {"c": "♣", "d": "♦", "h": "♥", "s": "♠"}
RANK_NAMES = {
    2: "Two",
    3: "Three",
    4: "Four",
    5: "Five",
    6: "Six",
    7: "Seven",
    8: "Eight",
    9: "Nine",
    10: "Ten",
    11: "Jack",
    12: "Queen",
    13: "King",
    14: "Ace",
}


class DeckExhaustedError(RuntimeError):
    pass


@dataclass(frozen=True, order=True)
class Card:
    rank: int
    suit: str

    def __post_init__(self) -> None:
        if not 2 <= self.rank <= 14:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    @classmethod
    def parse(cls, label: str) -> "Card":
        clean = label.strip()
        if len(clean) != 2:
            raise ValueError(f"Invalid card label: {label!r}")
        rank_char, suit_char = clean[0].upper(), clean[1].lower()
        if rank_char not in RANK_ORDER:
            raise ValueError(f"Invalid rank: {clean[0]!r}")
        return cls(RANK_ORDER.index(rank_char) + 2, suit_char)

    @property
    def label(self) -> str:
        return f"{RANK_ORDER[self.rank - 2]}{self.suit}"

    @property
    def symbol(self) -> str:
        return f"{RANK_ORDER[self.rank - 2]}{SUIT_SYMBOLS[self.suit]}"

    def __str__(self) -> str:
        return self.label


def parse_cards(labels: Iterable[str] | str) -> list[Card]:
    """Parse ``"As Kd"`` or ``["As", "Kd"]`` into cards."""
    if isinstance(labels, str):
        labels = labels.split()
    return [Card.parse(label) for label in labels]


def cards_to_labels(cards: Sequence[Card]) -> list[str]:
    return [card.label for card in cards]


def full_deck() -> list[Card]:
    return [Card(rank, suit) for suit in SUITS for rank in range(2, 15)]


class Deck:
    """Shuffled 52-card draw source with a cursor."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._cards = full_deck()
        (rng or random.Random()).shuffle(self._cards)
        self._cursor = 0

    @classmethod
    def from_cards(cls, cards: Sequence[Card]) -> "Deck":
        """Build a deck whose draw order starts with ``cards``.

        The rest of the 52 cards follow in a fixed order, so a test can stack
        just the cards it cares about.
        """
        if len(set(cards)) != len(cards):
            raise ValueError("Stacked deck contains duplicate cards.")
        deck = cls.__new__(cls)
        chosen = set(cards)
        deck._cards = list(cards) + [card for card in full_deck() if card not in chosen]
        deck._cursor = 0
        return deck

    @classmethod
    def seeded(cls, seed: int | str) -> "Deck":
        return cls(random.Random(seed))

    def draw(self) -> Card:
        if self._cursor >= len(self._cards):
            raise DeckExhaustedError("No cards left in the deck.")
        card = self._cards[self._cursor]
        self._cursor += 1
        return card

    def draw_many(self, count: int) -> list[Card]:
        return [self.draw() for _ in range(count)]

    @property
    def remaining(self) -> int:
        return len(self._cards) - self._cursor

    def __len__(self) -> int:
        return self.remaining
