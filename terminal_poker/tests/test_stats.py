import random

import pytest

from terminal_poker.app.cards import Deck, parse_cards
from terminal_poker.app.engine import Action, HeadsUpEngine
from terminal_poker.app.models import PlayerStatsModel
from terminal_poker.app.opponent import RuleBasedPolicy
from terminal_poker.app.stats import StatsAggregator


class Table:
    """Engine plus one aggregator per seat, mirrored the way the session does."""

    def __init__(self, stacks=200, lifetime: PlayerStatsModel | None = None) -> None:
        self.engine = HeadsUpEngine(starting_stacks=stacks, rng=random.Random(0))
        self.stats = {"human": StatsAggregator("human", lifetime), "bot": StatsAggregator("bot")}

    def start(self, deck: Deck | None = None) -> None:
        start = self.engine.start_hand(deck)
        for aggregator in self.stats.values():
            aggregator.on_hand_start(start)
        self._mirror(self.engine.hand_history())

    def act(self, player_id: str, action: Action) -> None:
        self._mirror(self.engine.apply(action, player_id))

    def _mirror(self, events) -> None:
        for event in events:
            for aggregator in self.stats.values():
                aggregator.on_action(event)
        if self.engine.is_hand_complete:
            for aggregator in self.stats.values():
                aggregator.on_hand_complete(self.engine.result)


def test_scenario_a_blinds_only_showdown() -> None:
    table = Table()
    table.start(Deck.from_cards(parse_cards("As 7d Ks 2c Qh 9c 4d 3s 8h")))
    table.act("human", Action.call())
    table.act("bot", Action.check())
    for _ in range(3):
        table.act("bot", Action.check())
        table.act("human", Action.check())

    human = table.stats["human"].snapshot()
    bot = table.stats["bot"].snapshot()
    for stats in (human, bot):
        assert stats.total_hands == 1
        assert stats.vpip_hands == 0
        assert stats.pfr_hands == 0
        assert stats.saw_flop == 1
        assert stats.wtsd_hands == 1
    assert human.wsd_hands == 1
    assert bot.wsd_hands == 0
    assert human.hands_won == 1
    assert human.net_bb == pytest.approx(1.0)
    assert bot.net_bb == pytest.approx(-1.0)
    assert human.biggest_pot_won == 4
    assert bot.biggest_pot_lost == 4


def test_scenario_b_open_raise_takes_it_down() -> None:
    table = Table()
    table.start(Deck.seeded(5))
    table.act("human", Action.raise_to(6))
    table.act("bot", Action.fold())

    human = table.stats["human"].snapshot()
    bot = table.stats["bot"].snapshot()
    assert human.pfr_hands == 1
    assert human.vpip_hands == 1
    assert human.wtsd_hands == 0
    assert bot.wtsd_hands == 0
    assert bot.three_bet_opportunities == 1
    assert bot.three_bet_hands == 0
    assert human.net_bb == pytest.approx(1.0)


def test_three_bet_counted_for_reraiser() -> None:
    table = Table()
    table.start(Deck.seeded(5))
    table.act("human", Action.raise_to(6))
    table.act("bot", Action.raise_to(18))
    table.act("human", Action.fold())

    bot = table.stats["bot"].snapshot()
    human = table.stats["human"].snapshot()
    assert bot.three_bet_opportunities == 1
    assert bot.three_bet_hands == 1
    assert bot.pfr_hands == 1
    assert human.three_bet_opportunities == 0
    assert human.vpip_hands == 1


def test_cbet_and_fold_to_cbet() -> None:
    table = Table()
    table.start(Deck.seeded(6))
    table.act("human", Action.raise_to(6))
    table.act("bot", Action.call())
    table.act("bot", Action.check())
    table.act("human", Action.bet(6))
    table.act("bot", Action.fold())

    human = table.stats["human"].snapshot()
    bot = table.stats["bot"].snapshot()
    assert human.cbet_opportunities == 1
    assert human.cbet_hands == 1
    assert human.bets == 1
    assert human.aggression_factor == pytest.approx(99.9)
    assert bot.vpip_hands == 1
    assert bot.fold_to_cbet_opportunities == 1
    assert bot.fold_to_cbet_hands == 1
    assert bot.cbet_opportunities == 0
    # Preflop calls do not count towards the aggression factor.
    assert bot.calls == 0


def test_checked_flop_is_a_missed_cbet() -> None:
    table = Table()
    table.start(Deck.seeded(6))
    table.act("human", Action.raise_to(6))
    table.act("bot", Action.call())
    table.act("bot", Action.check())
    table.act("human", Action.check())

    human = table.stats["human"].snapshot()
    assert human.cbet_opportunities == 1
    assert human.cbet_hands == 0


def test_abandoned_hand_keeps_actions_but_not_hand_count() -> None:
    table = Table()
    table.start(Deck.seeded(6))
    table.act("human", Action.raise_to(6))

    human = table.stats["human"].snapshot()
    assert human.total_hands == 0
    assert human.pfr_hands == 1


def test_lifetime_accumulates_on_loaded_counters() -> None:
    lifetime = PlayerStatsModel(total_hands=10, net_bb=5.0, biggest_pot_won=50)
    table = Table(lifetime=lifetime)
    table.start(Deck.seeded(5))
    table.act("human", Action.fold())

    aggregator = table.stats["human"]
    assert aggregator.snapshot("session").total_hands == 1
    assert aggregator.snapshot("lifetime").total_hands == 11
    assert aggregator.snapshot("lifetime").net_bb == pytest.approx(4.5)
    assert aggregator.snapshot("lifetime").biggest_pot_won == 50

    aggregator.record_session_end()
    assert aggregator.snapshot("session").total_sessions == 1
    assert aggregator.snapshot("lifetime").total_sessions == 1


def test_snapshot_is_a_copy() -> None:
    aggregator = StatsAggregator("human")
    snapshot = aggregator.snapshot()
    snapshot.total_hands = 99
    assert aggregator.snapshot().total_hands == 0


def test_derived_rates() -> None:
    stats = PlayerStatsModel(
        total_hands=200,
        vpip_hands=60,
        pfr_hands=40,
        saw_flop=80,
        wtsd_hands=20,
        wsd_hands=12,
        bets=10,
        raises=5,
        calls=6,
        net_bb=-30.0,
    )
    assert stats.vpip == pytest.approx(30.0)
    assert stats.pfr == pytest.approx(20.0)
    assert stats.wtsd == pytest.approx(25.0)
    assert stats.wsd == pytest.approx(60.0)
    assert stats.aggression_factor == pytest.approx(2.5)
    assert stats.bb_per_100 == pytest.approx(-15.0)
    assert PlayerStatsModel().bb_per_100 == 0.0
    assert PlayerStatsModel().aggression_factor == 0.0


def test_bot_vs_bot_session_invariants() -> None:
    table = Table(stacks=100)
    policies = {
        "human": RuleBasedPolicy(0.8, random.Random(1)),
        "bot": RuleBasedPolicy(0.3, random.Random(2)),
    }
    hands = 0
    while table.engine.can_start_hand() and hands < 150:
        table.start()
        hands += 1
        while not table.engine.is_hand_complete:
            actor = table.engine.actor_to_act
            table.act(actor, policies[actor].decide_action(table.engine.view_for(actor)))

    results = table.engine.completed_results
    for player_id, aggregator in table.stats.items():
        stats = aggregator.snapshot()
        assert stats.total_hands == hands
        assert stats.vpip_hands >= stats.pfr_hands
        assert stats.vpip >= stats.pfr
        assert stats.saw_flop >= stats.wtsd_hands >= stats.wsd_hands
        net_bb = sum(result.net[player_id] for result in results) / 2
        assert stats.net_bb == pytest.approx(net_bb)
        assert stats.bb_per_100 == pytest.approx(100.0 * net_bb / hands)
