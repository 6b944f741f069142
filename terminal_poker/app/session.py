from __future__ import annotations

import logging
import random

from .cards import Deck
from .config import SessionConfig
from .engine import (
    PLAYERS,
    Action,
    HeadsUpEngine,
    IllegalActionError,
    InvariantViolation,
    SessionFlowError,
)
from .models import (
    LegalActionModel,
    PlayerId,
    PlayerStatsModel,
    ReplayEventModel,
    SessionSummaryModel,
    TableSnapshotModel,
)
from .opponent import OpponentPolicy, RuleBasedPolicy, sanitize_decision
from .persistence import StatsStore
from .stats import StatsAggregator, StatsScope

logger = logging.getLogger(__name__)


class HeadsUpSession:
    """One sitting against the bot: engine, bot turns and stats wiring.

    The human acts through :meth:`process_human_action`; every bot decision
    that follows is played out before the call returns, so the human is
    either to act again or the hand is over. All engine events are mirrored
    to both players' :class:`StatsAggregator`.
    """

    def __init__(
        self,
        config: SessionConfig,
        policy: OpponentPolicy | None = None,
        store: StatsStore | None = None,
        first_button: PlayerId = "human",
    ) -> None:
        self.config = config
        seed = config.seed
        self.engine = HeadsUpEngine(
            starting_stacks=config.starting_chips,
            rng=random.Random(seed),
            first_button=first_button,
        )
        bot_rng = random.Random(None if seed is None else f"{seed}:bot")
        self.policy: OpponentPolicy = policy or RuleBasedPolicy(config.aggression, rng=bot_rng)

        self.store = store
        lifetime = store.load() if store is not None else None
        self.stats: dict[PlayerId, StatsAggregator] = {
            "human": StatsAggregator("human", lifetime),
            "bot": StatsAggregator("bot"),
        }
        self.closed = False
        self._reported_hand = 0

    # Properties -----------------------------------------------------

    @property
    def hand_in_progress(self) -> bool:
        return not self.engine.is_hand_complete

    @property
    def busted_player(self) -> PlayerId | None:
        if self.hand_in_progress:
            return None
        for player_id in PLAYERS:
            if self.engine.stacks[player_id] <= 0:
                return player_id
        return None

    @property
    def is_over(self) -> bool:
        return self.closed or self.busted_player is not None

    @property
    def persistence_warning(self) -> str | None:
        return self.store.warning if self.store is not None else None

    # Flow -----------------------------------------------------------

    def start_next_hand(self, deck: Deck | None = None) -> TableSnapshotModel:
        if self.closed:
            raise SessionFlowError("Session is closed.")
        start = self.engine.start_hand(deck)
        logger.debug("Hand %s started, button=%s", start.hand_number, start.button)
        for aggregator in self.stats.values():
            aggregator.on_hand_start(start)
        self._mirror(self.engine.hand_history())
        self._run_bot_turns()
        return self.get_state()

    def process_human_action(self, action: Action) -> list[ReplayEventModel]:
        if self.closed:
            raise SessionFlowError("Session is closed.")
        if not self.engine.has_hand:
            raise SessionFlowError("No hand has been dealt yet.")

        events = self.engine.apply(action, "human")
        self._mirror(events)
        return [*events, *self._run_bot_turns()]

    def close(self) -> SessionSummaryModel:
        summary = self.summary()
        if self.closed:
            return summary
        self.closed = True
        for aggregator in self.stats.values():
            aggregator.record_session_end()
        if self.store is not None:
            self.store.save(self.stats["human"].lifetime)
        logger.debug("Session closed after %s hands", summary.hands_played)
        return summary

    # Queries --------------------------------------------------------

    def get_state(self, reveal_bot: bool = False) -> TableSnapshotModel:
        return self.engine.snapshot(reveal_bot=reveal_bot)

    def legal_actions(self) -> list[LegalActionModel]:
        if self.engine.actor_to_act != "human":
            return []
        return [item.to_model() for item in self.engine.legal_actions("human")]

    def player_stats(self, player_id: PlayerId = "human", scope: StatsScope = "session") -> PlayerStatsModel:
        return self.stats[player_id].snapshot(scope)

    def summary(self) -> SessionSummaryModel:
        session_stats = self.stats["human"].session
        stacks = dict(self.engine.stacks)
        return SessionSummaryModel(
            hands_played=session_stats.total_hands,
            hands_won=session_stats.hands_won,
            starting_stack=self.config.starting_chips,
            final_stacks=stacks,
            net_chips=stacks["human"] - self.config.starting_chips,
            net_bb=session_stats.net_bb,
            biggest_pot_won=session_stats.biggest_pot_won,
            busted=self.busted_player,
        )

    # Internals ------------------------------------------------------

    def _run_bot_turns(self) -> list[ReplayEventModel]:
        produced: list[ReplayEventModel] = []
        while self.engine.actor_to_act == "bot":
            view = self.engine.view_for("bot")
            decision = self.policy.decide_action(view)
            action = sanitize_decision(decision, view.legal_actions)
            if action != decision:
                logger.debug("Bot decision %s sanitized to %s", decision, action)
            try:
                events = self.engine.apply(action, "bot")
            except IllegalActionError as exc:
                raise InvariantViolation(f"Sanitized bot action was rejected: {exc}") from exc
            self._mirror(events)
            produced.extend(events)
        return produced

    def _mirror(self, events: list[ReplayEventModel]) -> None:
        for event in events:
            for aggregator in self.stats.values():
                aggregator.on_action(event)

        result = self.engine.result
        if result is not None and result.hand_number > self._reported_hand:
            self._reported_hand = result.hand_number
            for aggregator in self.stats.values():
                aggregator.on_hand_complete(result)
            logger.debug(
                "Hand %s finished: winner=%s pot=%s (%s)",
                result.hand_number,
                result.winner,
                result.pot,
                result.resolution,
            )
