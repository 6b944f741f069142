from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Literal

from .cards import Card, Deck, cards_to_labels
from .evaluator import HandValue, evaluate
from .models import (
    ActionType,
    Actor,
    HandResultModel,
    HandStartModel,
    LegalActionModel,
    PlayerId,
    PlayerStateModel,
    ReplayEventModel,
    Street,
    TableSnapshotModel,
    Winner,
)

SMALL_BLIND = 1
BIG_BLIND = 2
PLAYERS: tuple[PlayerId, PlayerId] = ("human", "bot")
PLAYER_NAMES: dict[PlayerId, str] = {"human": "You", "bot": "Bot"}


class IllegalActionError(ValueError):
    def __init__(self, message: str, legal_actions: list[LegalActionModel]) -> None:
        super().__init__(message)
        self.legal_actions = legal_actions


class SessionFlowError(ValueError):
    pass


class InvariantViolation(RuntimeError):
    pass


def other_player(player_id: PlayerId) -> PlayerId:
    return "bot" if player_id == "human" else "human"


@dataclass(frozen=True)
class Action:
    type: ActionType
    amount: int | None = None

    @classmethod
    def fold(cls) -> "Action":
        return cls("fold")

    @classmethod
    def check(cls) -> "Action":
        return cls("check")

    @classmethod
    def call(cls) -> "Action":
        return cls("call")

    @classmethod
    def bet(cls, amount: int) -> "Action":
        return cls("bet", amount)

    @classmethod
    def raise_to(cls, amount: int) -> "Action":
        return cls("raise", amount)

    @property
    def is_aggressive(self) -> bool:
        return self.type in {"bet", "raise"}

    def describe(self) -> str:
        if self.type == "fold":
            return "folds"
        if self.type == "check":
            return "checks"
        if self.type == "call":
            return "calls"
        if self.type == "bet":
            return f"bets {self.amount}"
        return f"raises to {self.amount}"


@dataclass(frozen=True)
class LegalAction:
    type: ActionType
    min_amount: int | None = None
    max_amount: int | None = None
    to_call: int | None = None

    def to_model(self) -> LegalActionModel:
        return LegalActionModel(
            type=self.type,
            min_amount=self.min_amount,
            max_amount=self.max_amount,
            to_call=self.to_call,
        )

    def allows(self, action: Action) -> bool:
        if action.type != self.type:
            return False
        if self.type not in {"bet", "raise"}:
            return True
        if action.amount is None or self.min_amount is None or self.max_amount is None:
            return False
        return self.min_amount <= action.amount <= self.max_amount


@dataclass
class PlayerInternal:
    id: PlayerId
    name: str
    stack: int
    is_button: bool
    hole_cards: list[Card] = field(default_factory=list)
    cards_visible: bool = False
    folded: bool = False
    all_in: bool = False
    committed: int = 0
    contributed: int = 0


@dataclass
class HandInternal:
    hand_number: int
    button: PlayerId
    street: Street
    players: dict[PlayerId, PlayerInternal]
    deck: Deck
    board: list[Card]
    pot: int
    current_bet: int
    last_raise_size: int
    actor_to_act: PlayerId | None
    pending_actors: set[PlayerId]
    action_feed: list[ReplayEventModel]
    starting_stacks: dict[PlayerId, int]
    total_chips: int
    status: Literal["in_progress", "hand_complete"] = "in_progress"
    preflop_aggressor: PlayerId | None = None
    street_aggressor: PlayerId | None = None
    result: HandResultModel | None = None
    event_counter: int = 0


@dataclass(frozen=True)
class BotView:
    """Read-only view of the betting state from one player's seat."""

    player_id: PlayerId
    hand_number: int
    street: Street
    hole_cards: tuple[Card, ...]
    board: tuple[Card, ...]
    pot: int
    stack: int
    opponent_stack: int
    committed: int
    opponent_committed: int
    current_bet: int
    to_call: int
    big_blind: int
    is_button: bool
    preflop_aggressor: PlayerId | None
    street_aggressor: PlayerId | None
    legal_actions: tuple[LegalAction, ...]
    history: tuple[ReplayEventModel, ...]

    @property
    def in_position(self) -> bool:
        # Heads-up: the button acts last on every postflop street.
        return self.is_button

    @property
    def max_commit(self) -> int:
        return self.committed + self.stack

    def legal(self, action_type: ActionType) -> LegalAction | None:
        for item in self.legal_actions:
            if item.type == action_type:
                return item
        return None

    def street_actions(self, street: Street | None = None) -> list[ReplayEventModel]:
        wanted = street or self.street
        return [
            event
            for event in self.history
            if event.street == wanted and event.actor != "system" and event.action in {"fold", "check", "call", "bet", "raise"}
        ]


class HeadsUpEngine:
    """Heads-up No-Limit Hold'em betting state machine.

    The engine owns all mutable hand state. Callers submit one ``Action`` at a
    time through :meth:`apply` for whichever player is ``actor_to_act``; every
    call returns the feed entries it produced. Illegal actions raise
    :class:`IllegalActionError` and leave the state untouched.
    """

    def __init__(
        self,
        starting_stacks: int | dict[PlayerId, int] = 200,
        small_blind: int = SMALL_BLIND,
        big_blind: int = BIG_BLIND,
        rng: random.Random | None = None,
        first_button: PlayerId = "human",
    ) -> None:
        self.small_blind = small_blind
        self.big_blind = big_blind
        self._rng = rng or random.Random()

        if isinstance(starting_stacks, int):
            self.stacks: dict[PlayerId, int] = {"human": starting_stacks, "bot": starting_stacks}
        else:
            self.stacks = {
                "human": int(starting_stacks["human"]),
                "bot": int(starting_stacks["bot"]),
            }

        # Flipped before the first hand is dealt.
        self.button_player: PlayerId = other_player(first_button)
        self.hand_number = 0
        self.current_hand: HandInternal | None = None
        self.completed_results: list[HandResultModel] = []

    # Hand lifecycle -------------------------------------------------

    @property
    def hand(self) -> HandInternal:
        return self._require_hand()

    @property
    def has_hand(self) -> bool:
        return self.current_hand is not None

    @property
    def is_hand_complete(self) -> bool:
        return self.current_hand is None or self.current_hand.status == "hand_complete"

    @property
    def actor_to_act(self) -> PlayerId | None:
        if self.current_hand is None or self.current_hand.status != "in_progress":
            return None
        return self.current_hand.actor_to_act

    @property
    def result(self) -> HandResultModel | None:
        return self.current_hand.result if self.current_hand else None

    def can_start_hand(self) -> bool:
        return min(self.stacks.values()) > 0 and self.is_hand_complete

    def start_hand(self, deck: Deck | None = None) -> HandStartModel:
        if not self.is_hand_complete:
            raise SessionFlowError("Current hand is still in progress.")
        if min(self.stacks.values()) <= 0:
            raise SessionFlowError("Cannot start hand with busted players.")

        self.hand_number += 1
        self.button_player = other_player(self.button_player)
        button = self.button_player
        big_blind_player = other_player(button)
        deck = deck or Deck(self._rng)

        players: dict[PlayerId, PlayerInternal] = {
            player_id: PlayerInternal(
                id=player_id,
                name=PLAYER_NAMES[player_id],
                stack=self.stacks[player_id],
                is_button=button == player_id,
                cards_visible=player_id == "human",
            )
            for player_id in PLAYERS
        }

        for _ in range(2):
            for player_id in (button, big_blind_player):
                players[player_id].hole_cards.append(deck.draw())

        hand = HandInternal(
            hand_number=self.hand_number,
            button=button,
            street="preflop",
            players=players,
            deck=deck,
            board=[],
            pot=0,
            current_bet=0,
            last_raise_size=self.big_blind,
            actor_to_act=None,
            pending_actors=set(),
            action_feed=[],
            starting_stacks=dict(self.stacks),
            total_chips=sum(self.stacks.values()),
        )
        self.current_hand = hand

        sb_paid = self._commit_chips(hand, button, self.small_blind)
        bb_paid = self._commit_chips(hand, big_blind_player, self.big_blind)
        self._add_event(hand, button, "post_small_blind", amount=sb_paid)
        self._add_event(hand, big_blind_player, "post_big_blind", amount=bb_paid)

        hand.current_bet = max(player.committed for player in players.values())
        hand.last_raise_size = self.big_blind
        hand.pending_actors = self._active_not_all_in(hand)
        self._progress_game(hand)
        self._assert_chip_conservation(hand)

        return HandStartModel(
            hand_number=hand.hand_number,
            button=button,
            small_blind=self.small_blind,
            big_blind=self.big_blind,
            stacks=dict(hand.starting_stacks),
        )

    # Actions --------------------------------------------------------

    def legal_actions(self, player_id: PlayerId | None = None) -> list[LegalAction]:
        hand = self.current_hand
        if hand is None or hand.status != "in_progress" or hand.actor_to_act is None:
            return []
        actor = player_id or hand.actor_to_act
        if actor != hand.actor_to_act:
            return []

        player = hand.players[actor]
        opponent = hand.players[other_player(actor)]
        if player.folded or player.all_in:
            return []

        to_call = max(0, hand.current_bet - player.committed)
        max_total = player.committed + player.stack
        min_total = min(hand.current_bet + hand.last_raise_size, max_total)
        # Betting into an all-in opponent could never be called.
        can_aggress = opponent.stack > 0 and not opponent.folded

        actions: list[LegalAction] = []
        if to_call == 0:
            actions.append(LegalAction(type="check"))
            if can_aggress and player.stack > 0:
                actions.append(LegalAction(type="bet", min_amount=min_total, max_amount=max_total))
        else:
            actions.append(LegalAction(type="fold"))
            actions.append(LegalAction(type="call", to_call=min(to_call, player.stack)))
            if can_aggress and player.stack > to_call:
                actions.append(LegalAction(type="raise", min_amount=min_total, max_amount=max_total))
        return actions

    def apply(self, action: Action, player_id: PlayerId | None = None) -> list[ReplayEventModel]:
        hand = self._require_hand()
        if hand.status != "in_progress" or hand.actor_to_act is None:
            raise IllegalActionError("Hand is complete. Start the next hand first.", [])
        actor = hand.actor_to_act
        if player_id is not None and player_id != actor:
            raise IllegalActionError(f"It is not {player_id}'s turn.", [])

        legal_actions = self.legal_actions(actor)
        legal_by_type = {item.type: item for item in legal_actions}
        legal = legal_by_type.get(action.type)
        if legal is None:
            raise IllegalActionError(
                f"Illegal action {action.type!r} for current game state.",
                [item.to_model() for item in legal_actions],
            )
        if not legal.allows(action):
            raise IllegalActionError(
                f"{action.type.capitalize()} amount must be between {legal.min_amount} and {legal.max_amount}.",
                [item.to_model() for item in legal_actions],
            )

        start_index = len(hand.action_feed)
        player = hand.players[actor]

        if action.type == "fold":
            player.folded = True
            hand.pending_actors.discard(actor)
            self._add_event(hand, actor, "fold")

        elif action.type == "check":
            hand.pending_actors.discard(actor)
            self._add_event(hand, actor, "check")

        elif action.type == "call":
            paid = self._commit_chips(hand, actor, legal.to_call or 0)
            hand.pending_actors.discard(actor)
            self._add_event(hand, actor, "call", amount=paid)

        else:
            assert action.amount is not None
            previous_bet = hand.current_bet
            self._commit_chips(hand, actor, action.amount - player.committed)
            raise_size = player.committed - previous_bet
            # An all-in short of a full raise does not change the minimum increment.
            if raise_size >= hand.last_raise_size:
                hand.last_raise_size = raise_size
            hand.current_bet = player.committed
            hand.street_aggressor = actor
            if hand.street == "preflop":
                hand.preflop_aggressor = actor
            hand.pending_actors = self._active_not_all_in(hand) - {actor}
            self._add_event(hand, actor, action.type, amount=player.committed)

        self._progress_game(hand)
        self._assert_chip_conservation(hand)
        return hand.action_feed[start_index:]

    # Views ----------------------------------------------------------

    def view_for(self, player_id: PlayerId) -> BotView:
        hand = self._require_hand()
        player = hand.players[player_id]
        opponent = hand.players[other_player(player_id)]
        return BotView(
            player_id=player_id,
            hand_number=hand.hand_number,
            street=hand.street,
            hole_cards=tuple(player.hole_cards),
            board=tuple(hand.board),
            pot=hand.pot,
            stack=player.stack,
            opponent_stack=opponent.stack,
            committed=player.committed,
            opponent_committed=opponent.committed,
            current_bet=hand.current_bet,
            to_call=max(0, hand.current_bet - player.committed),
            big_blind=self.big_blind,
            is_button=player.is_button,
            preflop_aggressor=hand.preflop_aggressor,
            street_aggressor=hand.street_aggressor,
            legal_actions=tuple(self.legal_actions(player_id)),
            history=tuple(hand.action_feed),
        )

    def snapshot(self, reveal_bot: bool = False) -> TableSnapshotModel:
        hand = self._require_hand()
        players = {
            player_id: self._player_state_model(
                hand.players[player_id],
                reveal=hand.players[player_id].cards_visible or reveal_bot,
            )
            for player_id in PLAYERS
        }
        return TableSnapshotModel(
            hand_number=hand.hand_number,
            street=hand.street,
            status=hand.status,
            small_blind=self.small_blind,
            big_blind=self.big_blind,
            pot=hand.pot,
            board=cards_to_labels(hand.board),
            button=hand.button,
            actor_to_act=self.actor_to_act,
            players=players,
            legal_actions=[item.to_model() for item in self.legal_actions()],
            last_event=hand.action_feed[-1] if hand.action_feed else None,
            result=hand.result,
        )

    def hand_history(self) -> list[ReplayEventModel]:
        return list(self._require_hand().action_feed)

    def pot_odds(self, player_id: PlayerId) -> tuple[float, float] | None:
        """Return ``(pot : call ratio, equity needed)`` or None with nothing to call."""
        hand = self._require_hand()
        to_call = min(
            max(0, hand.current_bet - hand.players[player_id].committed),
            hand.players[player_id].stack,
        )
        if to_call == 0:
            return None
        pot_after_call = hand.pot + to_call
        return pot_after_call / to_call, to_call / pot_after_call

    # Street progression ---------------------------------------------

    def _progress_game(self, hand: HandInternal) -> None:
        active_players = [player for player in hand.players.values() if not player.folded]
        if len(active_players) == 1:
            self._resolve_fold_win(hand, active_players[0].id)
            return

        if hand.pending_actors:
            hand.actor_to_act = self._first_pending_actor(hand)
            return

        self._close_street(hand)

        if hand.street == "river":
            self._resolve_showdown(hand)
            return

        if len(self._active_not_all_in(hand)) <= 1:
            self._runout_and_resolve_showdown(hand)
            return

        self._deal_next_street(hand)
        hand.pending_actors = self._active_not_all_in(hand)
        hand.actor_to_act = self._first_pending_actor(hand)

    def _close_street(self, hand: HandInternal) -> None:
        self._return_uncalled_bet(hand)
        for player in hand.players.values():
            player.committed = 0
        hand.current_bet = 0
        hand.last_raise_size = self.big_blind
        hand.street_aggressor = None
        hand.actor_to_act = None

    def _return_uncalled_bet(self, hand: HandInternal) -> None:
        high, low = sorted(hand.players.values(), key=lambda player: player.committed, reverse=True)
        excess = high.committed - low.committed
        if excess <= 0 or not (low.all_in or low.folded):
            return
        high.stack += excess
        high.committed -= excess
        high.contributed -= excess
        hand.pot -= excess
        if high.stack > 0:
            high.all_in = False
        self._add_event(hand, high.id, "uncalled_bet_returned", amount=excess)

    def _deal_next_street(self, hand: HandInternal) -> None:
        if hand.street == "preflop":
            hand.street = "flop"
            hand.board.extend(hand.deck.draw_many(3))
            self._add_event(hand, "system", "flop_dealt")
            return

        if hand.street == "flop":
            hand.street = "turn"
            hand.board.append(hand.deck.draw())
            self._add_event(hand, "system", "turn_dealt")
            return

        if hand.street == "turn":
            hand.street = "river"
            hand.board.append(hand.deck.draw())
            self._add_event(hand, "system", "river_dealt")
            return

        raise SessionFlowError("Cannot deal next street from current state.")

    def _runout_and_resolve_showdown(self, hand: HandInternal) -> None:
        hand.actor_to_act = None
        hand.pending_actors.clear()
        while hand.street != "river":
            self._deal_next_street(hand)
        self._resolve_showdown(hand)

    # Resolution -----------------------------------------------------

    def _resolve_fold_win(self, hand: HandInternal, winner: PlayerId) -> None:
        self._return_uncalled_bet(hand)
        pot = hand.pot
        hand.players[winner].stack += pot
        hand.pot = 0
        self._add_event(hand, winner, "wins_pot", amount=pot)
        self._finish_hand(hand, winner=winner, resolution="fold", pot=pot)

    def _resolve_showdown(self, hand: HandInternal) -> None:
        hand.street = "showdown"
        human = hand.players["human"]
        bot = hand.players["bot"]
        values: dict[PlayerId, HandValue] = {
            "human": evaluate(human.hole_cards + hand.board),
            "bot": evaluate(bot.hole_cards + hand.board),
        }

        winner: Winner
        if values["human"] > values["bot"]:
            winner = "human"
        elif values["bot"] > values["human"]:
            winner = "bot"
        else:
            winner = "split"

        pot = hand.pot
        if winner == "split":
            half = pot // 2
            # Odd chip goes to the button.
            hand.players[hand.button].stack += half + pot % 2
            hand.players[other_player(hand.button)].stack += half
            self._add_event(hand, "system", "split_pot", amount=pot)
        else:
            hand.players[winner].stack += pot
            self._add_event(hand, winner, "wins_pot", amount=pot)
        hand.pot = 0

        human.cards_visible = True
        bot.cards_visible = True
        best = values[winner] if winner != "split" else values["human"]
        self._finish_hand(
            hand,
            winner=winner,
            resolution="showdown",
            pot=pot,
            hands={player_id: value.describe() for player_id, value in values.items()},
            best_category=best.category.label,
        )

    def _finish_hand(
        self,
        hand: HandInternal,
        winner: Winner,
        resolution: Literal["showdown", "fold"],
        pot: int,
        hands: dict[PlayerId, str] | None = None,
        best_category: str | None = None,
    ) -> None:
        hand.status = "hand_complete"
        hand.actor_to_act = None
        hand.pending_actors.clear()
        hand.current_bet = 0
        for player in hand.players.values():
            player.committed = 0
        self.stacks = {player_id: hand.players[player_id].stack for player_id in PLAYERS}

        hand.result = HandResultModel(
            hand_number=hand.hand_number,
            button=hand.button,
            winner=winner,
            resolution=resolution,
            pot=pot,
            big_blind=self.big_blind,
            net={player_id: self.stacks[player_id] - hand.starting_stacks[player_id] for player_id in PLAYERS},
            board=cards_to_labels(hand.board),
            showdown_players=list(PLAYERS) if resolution == "showdown" else [],
            hands=hands or {},
            best_category=best_category,
        )
        self.completed_results.append(hand.result)

    # Helpers --------------------------------------------------------

    def _commit_chips(self, hand: HandInternal, actor: PlayerId, amount: int) -> int:
        player = hand.players[actor]
        if amount <= 0 or player.stack <= 0:
            return 0
        paid = min(amount, player.stack)
        player.stack -= paid
        player.committed += paid
        player.contributed += paid
        hand.pot += paid
        if player.stack == 0:
            player.all_in = True
        return paid

    def _first_pending_actor(self, hand: HandInternal) -> PlayerId | None:
        for player_id in self._action_order(hand):
            if player_id in hand.pending_actors:
                return player_id
        return None

    def _action_order(self, hand: HandInternal) -> list[PlayerId]:
        if hand.street == "preflop":
            return [hand.button, other_player(hand.button)]
        return [other_player(hand.button), hand.button]

    def _active_not_all_in(self, hand: HandInternal) -> set[PlayerId]:
        return {
            player_id
            for player_id, player in hand.players.items()
            if not player.folded and not player.all_in
        }

    def _assert_chip_conservation(self, hand: HandInternal) -> None:
        in_play = sum(player.stack for player in hand.players.values()) + hand.pot
        if in_play != hand.total_chips:
            raise InvariantViolation(
                f"Chip conservation broken in hand {hand.hand_number}: {in_play} != {hand.total_chips}"
            )

    def _player_state_model(self, player: PlayerInternal, reveal: bool) -> PlayerStateModel:
        return PlayerStateModel(
            id=player.id,
            name=player.name,
            stack=player.stack,
            committed=player.committed,
            is_button=player.is_button,
            hole_cards=cards_to_labels(player.hole_cards) if reveal else ["??", "??"],
            cards_visible=reveal,
            folded=player.folded,
            all_in=player.all_in,
        )

    def _add_event(
        self,
        hand: HandInternal,
        actor: Actor,
        action: str,
        amount: int | None = None,
    ) -> None:
        hand.event_counter += 1
        all_in = actor != "system" and hand.players[actor].all_in
        event = ReplayEventModel(
            id=f"evt-{hand.hand_number:03d}-{hand.event_counter:03d}",
            hand_number=hand.hand_number,
            street=hand.street,
            actor=actor,
            action=action,
            amount=amount,
            all_in=all_in,
            pot=hand.pot,
            board=cards_to_labels(hand.board),
            stacks={player_id: hand.players[player_id].stack for player_id in PLAYERS},
        )
        hand.action_feed.append(event)

    def _require_hand(self) -> HandInternal:
        if not self.current_hand:
            raise SessionFlowError("No hand has been dealt yet.")
        return self.current_hand
