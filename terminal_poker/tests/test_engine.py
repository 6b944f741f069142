import random

import pytest

from terminal_poker.app.cards import Deck, parse_cards
from terminal_poker.app.engine import (
    Action,
    HeadsUpEngine,
    IllegalActionError,
    SessionFlowError,
)


def stacked(labels: str) -> Deck:
    """Deal order: button, big blind, button, big blind, then the board."""
    return Deck.from_cards(parse_cards(labels))


def legal_types(engine: HeadsUpEngine) -> set[str]:
    return {item.type for item in engine.legal_actions()}


def test_blinds_posted_and_button_acts_first_preflop() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(Deck.seeded(1))
    snapshot = engine.snapshot()

    assert snapshot.hand_number == 1
    assert snapshot.button == "human"
    assert snapshot.pot == 3
    assert snapshot.players["human"].committed == 1
    assert snapshot.players["bot"].committed == 2
    assert engine.actor_to_act == "human"
    assert snapshot.players["bot"].hole_cards == ["??", "??"]

    by_type = {item.type: item for item in engine.legal_actions()}
    assert set(by_type) == {"fold", "call", "raise"}
    assert by_type["call"].to_call == 1
    assert by_type["raise"].min_amount == 4
    assert by_type["raise"].max_amount == 200


def test_scenario_a_check_down_to_showdown() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(stacked("As 7d Ks 2c Qh 9c 4d 3s 8h"))

    engine.apply(Action.call(), "human")
    engine.apply(Action.check(), "bot")
    assert engine.hand.street == "flop"
    for _ in range(3):
        assert engine.actor_to_act == "bot"
        engine.apply(Action.check(), "bot")
        engine.apply(Action.check(), "human")

    result = engine.result
    assert result is not None
    assert result.resolution == "showdown"
    assert result.winner == "human"
    assert result.pot == 4
    assert result.net == {"human": 2, "bot": -2}
    assert result.hands["human"] == "Ace high"
    assert engine.stacks == {"human": 202, "bot": 198}
    assert engine.hand.street == "showdown"
    assert engine.snapshot().players["bot"].cards_visible is True


def test_scenario_b_raise_fold_returns_uncalled_bet() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(Deck.seeded(5))

    engine.apply(Action.raise_to(6), "human")
    events = engine.apply(Action.fold(), "bot")

    actions = [event.action for event in events]
    assert actions == ["fold", "uncalled_bet_returned", "wins_pot"]
    assert events[1].amount == 4
    result = engine.result
    assert result is not None
    assert result.resolution == "fold"
    assert result.pot == 4
    assert result.showdown_players == []
    assert engine.hand.street == "preflop"
    assert engine.stacks == {"human": 202, "bot": 198}
    # No reveal on a fold.
    assert engine.snapshot().players["bot"].hole_cards == ["??", "??"]


def test_scenario_c_all_in_on_flop_runs_out_board() -> None:
    engine = HeadsUpEngine(starting_stacks={"human": 200, "bot": 100})
    engine.start_hand(Deck.seeded(9))

    engine.apply(Action.call(), "human")
    engine.apply(Action.check(), "bot")
    assert engine.actor_to_act == "bot"

    shove = {item.type: item for item in engine.legal_actions()}["bet"]
    assert shove.max_amount == 98
    engine.apply(Action.bet(98), "bot")
    events = engine.apply(Action.call(), "human")

    actions = [event.action for event in events]
    assert "uncalled_bet_returned" not in actions
    assert actions[:3] == ["call", "turn_dealt", "river_dealt"]
    assert engine.actor_to_act is None
    result = engine.result
    assert result is not None
    assert result.resolution == "showdown"
    assert result.pot == 200
    assert len(result.board) == 5
    assert sum(engine.stacks.values()) == 300


def test_illegal_action_leaves_state_unchanged() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(Deck.seeded(2))
    before = engine.snapshot()

    with pytest.raises(IllegalActionError) as excinfo:
        engine.apply(Action.raise_to(3), "human")
    assert {item.type for item in excinfo.value.legal_actions} == {"fold", "call", "raise"}

    with pytest.raises(IllegalActionError):
        engine.apply(Action.check(), "human")

    with pytest.raises(IllegalActionError):
        engine.apply(Action.call(), "bot")

    assert engine.snapshot() == before


def test_acting_after_hand_complete_is_rejected() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(Deck.seeded(2))
    engine.apply(Action.fold(), "human")

    with pytest.raises(IllegalActionError) as excinfo:
        engine.apply(Action.check())
    assert excinfo.value.legal_actions == []
    assert engine.legal_actions() == []


def test_start_hand_while_in_progress_fails() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(Deck.seeded(2))
    with pytest.raises(SessionFlowError):
        engine.start_hand()


def test_min_raise_tracks_last_raise_size() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(Deck.seeded(4))
    engine.apply(Action.raise_to(6), "human")

    raise_option = {item.type: item for item in engine.legal_actions()}["raise"]
    assert raise_option.min_amount == 10

    engine.apply(Action.raise_to(20), "bot")
    raise_option = {item.type: item for item in engine.legal_actions()}["raise"]
    assert raise_option.min_amount == 34


def test_short_all_in_raise_does_not_reopen_aggression() -> None:
    engine = HeadsUpEngine(starting_stacks={"human": 200, "bot": 7})
    engine.start_hand(Deck.seeded(4))
    engine.apply(Action.raise_to(6), "human")

    raise_option = {item.type: item for item in engine.legal_actions()}["raise"]
    assert raise_option.min_amount == raise_option.max_amount == 7
    engine.apply(Action.raise_to(7), "bot")

    assert legal_types(engine) == {"fold", "call"}
    assert {item.type: item for item in engine.legal_actions()}["call"].to_call == 1


def test_call_for_less_is_all_in_and_excess_is_returned() -> None:
    engine = HeadsUpEngine(starting_stacks={"human": 200, "bot": 50})
    engine.start_hand(Deck.seeded(8))
    engine.apply(Action.raise_to(120), "human")

    call = {item.type: item for item in engine.legal_actions()}["call"]
    assert call.to_call == 48
    assert legal_types(engine) == {"fold", "call"}

    events = engine.apply(Action.call(), "bot")
    returned = [event for event in events if event.action == "uncalled_bet_returned"]
    assert len(returned) == 1
    assert returned[0].actor == "human"
    assert returned[0].amount == 70
    assert engine.result is not None
    assert engine.result.pot == 100


def test_big_blind_option_after_limp() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(Deck.seeded(3))
    engine.apply(Action.call(), "human")

    by_type = {item.type: item for item in engine.legal_actions()}
    assert set(by_type) == {"check", "bet"}
    assert by_type["bet"].min_amount == 4


def test_postflop_big_blind_acts_first() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(Deck.seeded(3))
    engine.apply(Action.call(), "human")
    engine.apply(Action.check(), "bot")

    assert engine.hand.street == "flop"
    assert len(engine.hand.board) == 3
    assert engine.actor_to_act == "bot"
    assert legal_types(engine) == {"check", "bet"}


def test_button_alternates_every_hand() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    buttons = []
    for seed in range(4):
        start = engine.start_hand(Deck.seeded(seed))
        buttons.append(start.button)
        assert engine.actor_to_act == start.button
        engine.apply(Action.fold())
    assert buttons == ["human", "bot", "human", "bot"]


def test_split_pot_returns_chips() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(stacked("2c 4c 3d 5d As Ks Qs Js Ts"))
    engine.apply(Action.call(), "human")
    engine.apply(Action.check(), "bot")
    for _ in range(3):
        engine.apply(Action.check(), "bot")
        engine.apply(Action.check(), "human")

    result = engine.result
    assert result is not None
    assert result.winner == "split"
    assert result.best_category == "straight flush"
    assert engine.stacks == {"human": 200, "bot": 200}
    assert engine.hand.action_feed[-1].action == "split_pot"


def test_pot_odds() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(Deck.seeded(3))
    ratio, needed = engine.pot_odds("human")
    assert ratio == pytest.approx(4.0)
    assert needed == pytest.approx(0.25)
    assert engine.pot_odds("bot") is None


def test_event_ids_and_history() -> None:
    engine = HeadsUpEngine(starting_stacks=200)
    engine.start_hand(Deck.seeded(3))
    history = engine.hand_history()
    assert [event.action for event in history] == ["post_small_blind", "post_big_blind"]
    assert history[0].id == "evt-001-001"
    assert history[1].stacks == {"human": 199, "bot": 198}


def test_random_play_conserves_chips_and_offers_sane_actions() -> None:
    rng = random.Random(99)
    engine = HeadsUpEngine(starting_stacks=60, rng=random.Random(5))
    hands = 0
    while engine.can_start_hand() and hands < 150:
        engine.start_hand()
        hands += 1
        total = sum(engine.hand.starting_stacks.values())
        while not engine.is_hand_complete:
            legal = engine.legal_actions()
            assert legal
            view = engine.view_for(engine.actor_to_act)
            if view.to_call > 0:
                assert "check" not in {item.type for item in legal}
            choice = rng.choice(legal)
            if choice.type in {"bet", "raise"}:
                amount = rng.randint(choice.min_amount, choice.max_amount)
                action = Action(choice.type, amount)
            else:
                action = Action(choice.type)
            engine.apply(action)
            hand = engine.hand
            assert sum(player.stack for player in hand.players.values()) + hand.pot == total
        assert sum(engine.stacks.values()) == 120
    assert hands > 1
