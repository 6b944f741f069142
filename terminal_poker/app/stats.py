from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from .models import (
    HandResultModel,
    HandStartModel,
    PlayerId,
    PlayerStatsModel,
    ReplayEventModel,
)

logger = logging.getLogger(__name__)

StatsScope = Literal["session", "lifetime"]

_PLAYER_ACTIONS = {"fold", "check", "call", "bet", "raise"}
_AGGRESSIVE = {"bet", "raise"}


@dataclass
class _HandTracker:
    """Per-hand flags so each hand counts at most once per stat."""

    hand_number: int
    preflop_raises: int = 0
    preflop_aggressor: PlayerId | None = None
    vpip: bool = False
    pfr: bool = False
    three_bet_opportunity: bool = False
    three_bet: bool = False
    flop_bet_made: bool = False
    cbet_opportunity: bool = False
    facing_cbet: bool = False
    fold_to_cbet_opportunity: bool = False


class StatsAggregator:
    """Accumulates one player's counters from the engine's event stream.

    Every increment lands in both the session counters (fresh per process)
    and the lifetime counters (loaded from disk by the caller). Action-level
    counters are recorded as the actions arrive; hand-level counters only on
    :meth:`on_hand_complete`, so an abandoned hand contributes its actions but
    not a hand played.
    """

    def __init__(self, player_id: PlayerId, lifetime: PlayerStatsModel | None = None) -> None:
        self.player_id = player_id
        self.session = PlayerStatsModel()
        self.lifetime = lifetime if lifetime is not None else PlayerStatsModel()
        self._hand: _HandTracker | None = None

    # Event entry points ---------------------------------------------

    def on_hand_start(self, start: HandStartModel) -> None:
        self._hand = _HandTracker(hand_number=start.hand_number)

    def on_action(self, event: ReplayEventModel) -> None:
        hand = self._hand
        if hand is None or event.hand_number != hand.hand_number:
            return

        if event.action == "flop_dealt":
            self._bump("saw_flop")
            return
        if event.actor == "system" or event.action not in _PLAYER_ACTIONS:
            return

        if event.street == "preflop":
            self._on_preflop_action(hand, event)
        elif event.street in {"flop", "turn", "river"}:
            self._on_postflop_action(hand, event)

    def on_hand_complete(self, result: HandResultModel) -> None:
        hand = self._hand
        if hand is not None and result.hand_number != hand.hand_number:
            logger.debug("Ignoring result for hand %s while tracking hand %s", result.hand_number, hand.hand_number)
            return

        me = self.player_id
        self._bump("total_hands")
        if result.won_by(me):
            self._bump("hands_won")
            self._track_max("biggest_pot_won", result.pot)
        elif result.winner not in {me, "split"}:
            self._track_max("biggest_pot_lost", result.pot)

        if result.resolution == "showdown" and me in result.showdown_players:
            self._bump("wtsd_hands")
            if result.won_by(me):
                self._bump("wsd_hands")

        net_bb = result.net.get(me, 0) / result.big_blind
        self.session.net_bb += net_bb
        self.lifetime.net_bb += net_bb
        self._hand = None

    def record_session_end(self) -> None:
        self._bump("total_sessions")

    # Queries --------------------------------------------------------

    def snapshot(self, scope: StatsScope = "session") -> PlayerStatsModel:
        source = self.session if scope == "session" else self.lifetime
        return source.model_copy()

    # Internals ------------------------------------------------------

    def _on_preflop_action(self, hand: _HandTracker, event: ReplayEventModel) -> None:
        me = self.player_id
        if event.actor == me:
            if hand.preflop_raises == 1 and hand.preflop_aggressor != me and not hand.three_bet_opportunity:
                hand.three_bet_opportunity = True
                self._bump("three_bet_opportunities")

            if event.action == "call" and hand.preflop_raises > 0 and not hand.vpip:
                # Completing the small blind into an unraised pot is not voluntary.
                hand.vpip = True
                self._bump("vpip_hands")
            elif event.action in _AGGRESSIVE:
                if not hand.vpip:
                    hand.vpip = True
                    self._bump("vpip_hands")
                if not hand.pfr:
                    hand.pfr = True
                    self._bump("pfr_hands")
                if hand.three_bet_opportunity and hand.preflop_raises == 1 and not hand.three_bet:
                    hand.three_bet = True
                    self._bump("three_bet_hands")

        if event.action in _AGGRESSIVE:
            hand.preflop_raises += 1
            hand.preflop_aggressor = event.actor  # type: ignore[assignment]

    def _on_postflop_action(self, hand: _HandTracker, event: ReplayEventModel) -> None:
        me = self.player_id
        on_flop = event.street == "flop"

        if event.actor == me:
            if event.action == "bet":
                self._bump("bets")
            elif event.action == "raise":
                self._bump("raises")
            elif event.action == "call":
                self._bump("calls")

            if on_flop and hand.preflop_aggressor == me and not hand.flop_bet_made and not hand.cbet_opportunity:
                hand.cbet_opportunity = True
                self._bump("cbet_opportunities")
                if event.action == "bet":
                    self._bump("cbet_hands")

            if on_flop and hand.facing_cbet and not hand.fold_to_cbet_opportunity:
                hand.fold_to_cbet_opportunity = True
                hand.facing_cbet = False
                self._bump("fold_to_cbet_opportunities")
                if event.action == "fold":
                    self._bump("fold_to_cbet_hands")

        elif on_flop and event.action == "bet" and not hand.flop_bet_made and hand.preflop_aggressor == event.actor:
            hand.facing_cbet = True

        if on_flop and event.action in _AGGRESSIVE:
            hand.flop_bet_made = True

    def _bump(self, field: str, amount: int = 1) -> None:
        for stats in (self.session, self.lifetime):
            setattr(stats, field, getattr(stats, field) + amount)

    def _track_max(self, field: str, value: int) -> None:
        for stats in (self.session, self.lifetime):
            if value > getattr(stats, field):
                setattr(stats, field, value)
