from __future__ import annotations

import logging
import random
from dataclasses import dataclass, fields
from typing import Protocol, Sequence

from .cards import Card
from .draws import BoardTexture, DrawInfo, analyze_board_texture, detect_draws
from .engine import Action, BotView, LegalAction
from .evaluator import HandCategory, HandValue, evaluate
from .preflop import preflop_strength

logger = logging.getLogger(__name__)


class OpponentPolicy(Protocol):
    def decide_action(self, view: BotView) -> Action:
        ...


class DeterministicPolicy:
    """Check when possible, otherwise call. Never folds while calling is legal."""

    def decide_action(self, view: BotView) -> Action:
        return fallback_action(view.legal_actions)


def fallback_action(legal_actions: Sequence[LegalAction]) -> Action:
    by_type = {item.type: item for item in legal_actions}
    if "check" in by_type:
        return Action.check()
    if "call" in by_type:
        return Action.call()
    if "fold" in by_type:
        return Action.fold()
    raise RuntimeError("No legal actions available for fallback policy.")


def sanitize_decision(decision: Action, legal_actions: Sequence[LegalAction]) -> Action:
    """Clamp ``decision`` into the legal set, or fall back to a passive action."""
    legal_by_type = {item.type: item for item in legal_actions}
    legal = legal_by_type.get(decision.type)
    if legal is None:
        return fallback_action(legal_actions)

    if decision.type in {"bet", "raise"}:
        low = legal.min_amount
        high = legal.max_amount
        if low is None or high is None:
            return fallback_action(legal_actions)
        amount = decision.amount if decision.amount is not None else low
        return Action(decision.type, max(low, min(high, int(amount))))

    return Action(decision.type)


@dataclass(frozen=True)
class StyleProfile:
    """Decision thresholds and sizings for one end of the aggression scale."""

    open_raise: float
    open_limp: float
    iso_raise: float
    three_bet: float
    call_raise: float
    open_size_bb: float
    three_bet_mult: float
    steal_freq: float
    cbet_freq: float
    value_bet_frac: float
    bluff_bet_frac: float
    bluff_freq: float
    semi_bluff_freq: float
    raise_frac: float
    call_margin: float


PASSIVE = StyleProfile(
    open_raise=0.70,
    open_limp=0.42,
    iso_raise=0.80,
    three_bet=0.88,
    call_raise=0.60,
    open_size_bb=2.0,
    three_bet_mult=2.5,
    steal_freq=0.0,
    cbet_freq=0.35,
    value_bet_frac=0.30,
    bluff_bet_frac=0.30,
    bluff_freq=0.0,
    semi_bluff_freq=0.10,
    raise_frac=0.60,
    call_margin=0.06,
)

AGGRESSIVE = StyleProfile(
    open_raise=0.48,
    open_limp=0.30,
    iso_raise=0.58,
    three_bet=0.72,
    call_raise=0.50,
    open_size_bb=3.0,
    three_bet_mult=3.5,
    steal_freq=0.25,
    cbet_freq=0.85,
    value_bet_frac=0.85,
    bluff_bet_frac=0.60,
    bluff_freq=0.30,
    semi_bluff_freq=0.45,
    raise_frac=1.0,
    call_margin=-0.02,
)


def blend_profile(aggression: float) -> StyleProfile:
    """Linear interpolation between the passive and aggressive profiles."""
    weight = min(1.0, max(0.0, aggression))
    values = {
        item.name: getattr(PASSIVE, item.name) * (1.0 - weight) + getattr(AGGRESSIVE, item.name) * weight
        for item in fields(StyleProfile)
    }
    return StyleProfile(**values)


def made_hand_equity(value: HandValue, hole_cards: Sequence[Card], board: Sequence[Card]) -> float:
    """Rough showdown equity of a made hand against a heads-up calling range."""
    category = value.category
    hole_ranks = {card.rank for card in hole_cards}
    board_ranks = sorted((card.rank for card in board), reverse=True)

    if len(board) == 5 and evaluate(board) == value:
        # Playing the board: at best a split.
        return 0.35

    if category >= HandCategory.FOUR_OF_A_KIND:
        return 0.98
    if category == HandCategory.FULL_HOUSE:
        return 0.95
    if category == HandCategory.FLUSH:
        return 0.92 if value.tiebreak[0] == 14 else 0.88
    if category == HandCategory.STRAIGHT:
        return 0.84
    if category == HandCategory.THREE_OF_A_KIND:
        return 0.80 if value.tiebreak[0] in hole_ranks else 0.45
    if category == HandCategory.TWO_PAIR:
        high, low = value.tiebreak[0], value.tiebreak[1]
        if high in hole_ranks and low in hole_ranks:
            return 0.74
        if high in hole_ranks or low in hole_ranks:
            return 0.62
        return 0.30
    if category == HandCategory.ONE_PAIR:
        pair_rank = value.tiebreak[0]
        if pair_rank not in hole_ranks:
            return _high_card_equity(hole_cards)
        pocket_pair = len(hole_ranks) == 1
        if pocket_pair and pair_rank > board_ranks[0]:
            return 0.70
        if pair_rank >= board_ranks[0]:
            kicker = max((rank for rank in hole_ranks if rank != pair_rank), default=pair_rank)
            return 0.56 + (kicker - 2) / 12.0 * 0.08
        if len(board_ranks) > 1 and pair_rank >= board_ranks[1]:
            return 0.46
        return 0.38
    return _high_card_equity(hole_cards)


def _high_card_equity(hole_cards: Sequence[Card]) -> float:
    top = max(card.rank for card in hole_cards)
    return 0.12 + (top - 2) / 12.0 * 0.15


class RuleBasedPolicy:
    """Hand-strength and board-texture driven heads-up bot.

    ``aggression`` in [0, 1] picks a point between the passive and
    aggressive :class:`StyleProfile`. All randomness comes from ``rng`` so
    a session seeded once replays identically.
    """

    def __init__(self, aggression: float = 0.5, rng: random.Random | None = None) -> None:
        self.aggression = min(1.0, max(0.0, aggression))
        self.profile = blend_profile(self.aggression)
        self.rng = rng or random.Random()

    def decide_action(self, view: BotView) -> Action:
        if not view.legal_actions:
            raise RuntimeError("Bot asked to act with no legal actions.")
        if len(view.legal_actions) == 1:
            only = view.legal_actions[0]
            return Action(only.type, only.max_amount)

        if view.street == "preflop":
            decision = self._decide_preflop(view)
        else:
            decision = self._decide_postflop(view)

        action = sanitize_decision(decision, view.legal_actions)
        logger.debug("Bot %s on %s (hand %s)", action.describe(), view.street, view.hand_number)
        return action

    # Preflop --------------------------------------------------------

    def _decide_preflop(self, view: BotView) -> Action:
        profile = self.profile
        strength = preflop_strength(view.hole_cards) + self._noise(0.04)
        bb = view.big_blind
        raises = sum(1 for event in view.street_actions("preflop") if event.action in {"bet", "raise"})

        if view.to_call == 0:
            # Big blind option after a limp.
            if strength >= profile.iso_raise or (strength >= profile.open_limp and self._chance(profile.steal_freq * 0.5)):
                return Action.bet(view.current_bet + round(bb * profile.open_size_bb))
            return Action.check()

        if raises == 0:
            if strength >= profile.open_raise:
                return Action.raise_to(round(bb * profile.open_size_bb))
            if strength >= profile.open_limp:
                if self._chance(profile.steal_freq):
                    return Action.raise_to(round(bb * profile.open_size_bb))
                return Action.call()
            if self._chance(profile.steal_freq * 0.4):
                return Action.raise_to(round(bb * profile.open_size_bb))
            return Action.fold()

        return self._facing_preflop_raise(view, strength, raises)

    def _facing_preflop_raise(self, view: BotView, strength: float, raises: int) -> Action:
        profile = self.profile
        pot_odds = view.to_call / (view.pot + view.to_call)
        three_bet_to = round(view.current_bet * profile.three_bet_mult)

        if raises == 1:
            if strength >= profile.three_bet:
                return Action.raise_to(three_bet_to)
            if strength >= profile.three_bet - 0.10 and self._chance(profile.steal_freq):
                return Action.raise_to(three_bet_to)
        elif strength >= max(0.90, profile.three_bet + 0.05):
            # Facing a 3-bet or more: only the top of the range re-raises, and it jams.
            return Action.raise_to(view.max_commit)

        # Bigger raises need more; cheap calls a little less.
        required = profile.call_raise + 0.04 * (raises - 1) + (pot_odds - 0.33) * 0.3
        if strength >= required:
            return Action.call()
        if view.to_call <= view.big_blind and strength >= profile.open_limp:
            return Action.call()
        return Action.fold()

    # Postflop -------------------------------------------------------

    def _decide_postflop(self, view: BotView) -> Action:
        profile = self.profile
        value = evaluate([*view.hole_cards, *view.board])
        texture = analyze_board_texture(view.board)
        draws = detect_draws(view.hole_cards, view.board)
        equity = self._estimate_equity(view, value, texture, draws)

        if view.to_call == 0:
            return self._bet_or_check(view, equity, texture, draws)
        return self._facing_bet(view, equity, draws)

    def _estimate_equity(self, view: BotView, value: HandValue, texture: BoardTexture, draws: DrawInfo) -> float:
        made = made_hand_equity(value, view.hole_cards, view.board)
        if texture.is_wet and value.category <= HandCategory.TWO_PAIR:
            made -= 0.05
        # Hands that lose to a straight or flush the board already allows.
        if texture.flush_possible and value.category < HandCategory.FLUSH:
            made -= 0.08
        elif texture.straight_possible and value.category < HandCategory.STRAIGHT:
            made -= 0.04
        street_factor = {"flop": 1.0, "turn": 0.5}.get(view.street, 0.0)
        improve = draws.improvement_equity(len(view.board))
        equity = made + (1.0 - made) * improve + draws.equity_boost(street_factor)
        equity += 0.03 if view.in_position else -0.02
        return min(1.0, max(0.0, equity + self._noise(0.03)))

    def _bet_or_check(self, view: BotView, equity: float, texture: BoardTexture, draws: DrawInfo) -> Action:
        profile = self.profile
        texture_bump = 0.15 if texture.is_wet else -0.05 if texture.is_dry else 0.0

        cbet_spot = (
            view.street == "flop"
            and view.preflop_aggressor == view.player_id
            and all(event.action == "check" for event in view.street_actions("flop"))
        )

        if equity >= 0.62:
            return self._bet(view, profile.value_bet_frac + texture_bump)
        if cbet_spot and self._chance(profile.cbet_freq):
            return self._bet(view, profile.bluff_bet_frac + max(0.0, texture_bump))
        if draws.is_strong_draw and self._chance(profile.semi_bluff_freq):
            return self._bet(view, profile.bluff_bet_frac + 0.1)
        if equity >= 0.50 and self._chance(0.3 + self.aggression * 0.4):
            return self._bet(view, profile.bluff_bet_frac)
        bluff_freq = profile.bluff_freq * (1.0 if view.in_position else 0.5)
        if equity < 0.30 and self._chance(bluff_freq):
            return self._bet(view, profile.bluff_bet_frac)
        return Action.check()

    def _facing_bet(self, view: BotView, equity: float, draws: DrawInfo) -> Action:
        profile = self.profile
        pot_odds = view.to_call / (view.pot + view.to_call)
        call_margin = profile.call_margin
        if view.street_aggressor is not None and view.street_aggressor != view.preflop_aggressor:
            # A lead from the preflop caller is called a little wider than a c-bet.
            call_margin -= 0.04

        if equity >= 0.85:
            return self._raise(view, profile.raise_frac)
        if equity >= 0.68 and self._chance(0.25 + self.aggression * 0.45):
            return self._raise(view, profile.raise_frac)
        if draws.is_strong_draw and view.street != "river" and self._chance(profile.semi_bluff_freq * 0.6):
            return self._raise(view, profile.raise_frac)
        if equity >= pot_odds + call_margin:
            return Action.call()
        if view.street == "river" and equity < 0.2 and self._chance(profile.bluff_freq * 0.3):
            return self._raise(view, profile.raise_frac)
        return Action.fold()

    # Sizing ---------------------------------------------------------

    def _bet(self, view: BotView, fraction: float) -> Action:
        legal = view.legal("bet")
        if legal is None or legal.max_amount is None:
            return Action.check()
        target = view.current_bet + max(view.big_blind, round(view.pot * fraction))
        return Action.bet(self._snap_to_all_in(target, legal))

    def _raise(self, view: BotView, fraction: float) -> Action:
        legal = view.legal("raise")
        if legal is None or legal.max_amount is None:
            return Action.call()
        target = view.current_bet + round((view.pot + view.to_call) * fraction)
        return Action.raise_to(self._snap_to_all_in(target, legal))

    @staticmethod
    def _snap_to_all_in(target: int, legal: LegalAction) -> int:
        assert legal.min_amount is not None and legal.max_amount is not None
        # Leaving less than a fifth of the stack behind is a shove.
        if target >= legal.max_amount * 0.8:
            return legal.max_amount
        return max(legal.min_amount, target)

    # Randomness -----------------------------------------------------

    def _noise(self, spread: float) -> float:
        return self.rng.uniform(-spread, spread)

    def _chance(self, probability: float) -> bool:
        if probability <= 0.0:
            return False
        return self.rng.random() < probability
