from pathlib import Path

import pytest

from terminal_poker.app.config import ENV_AGGRESSION, ENV_SEED, ENV_STACK, ENV_STATS_FILE, SessionConfig
from terminal_poker.app.engine import Action
from terminal_poker.app.main import describe_event, main, parse_command, render_stats, run_console
from terminal_poker.app.models import LegalActionModel, PlayerStatsModel, ReplayEventModel
from terminal_poker.app.opponent import DeterministicPolicy
from terminal_poker.app.persistence import StatsStore
from terminal_poker.app.session import HeadsUpSession

FACING_RAISE = [
    LegalActionModel(type="fold"),
    LegalActionModel(type="call", to_call=4),
    LegalActionModel(type="raise", min_amount=10, max_amount=200),
]
UNOPENED = [
    LegalActionModel(type="check"),
    LegalActionModel(type="bet", min_amount=2, max_amount=150),
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    for name in (ENV_STACK, ENV_AGGRESSION, ENV_SEED, ENV_STATS_FILE):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.mark.parametrize(
    ("raw", "legal", "expected"),
    [
        ("f", FACING_RAISE, Action.fold()),
        ("c", FACING_RAISE, Action.call()),
        ("c", UNOPENED, Action.check()),
        ("k", UNOPENED, Action.check()),
        ("r 24", FACING_RAISE, Action.raise_to(24)),
        ("b 24", FACING_RAISE, Action.raise_to(24)),
        ("r 10", UNOPENED, Action.bet(10)),
        ("a", FACING_RAISE, Action.raise_to(200)),
        ("A", UNOPENED, Action.bet(150)),
        ("a", [LegalActionModel(type="fold"), LegalActionModel(type="call", to_call=30)], Action.call()),
    ],
)
def test_parse_command(raw: str, legal: list, expected: Action) -> None:
    assert parse_command(raw, legal) == expected


@pytest.mark.parametrize("raw", ["", "x", "r", "r lots", "b 1 2"])
def test_parse_command_rejects_garbage(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_command(raw, FACING_RAISE)


def test_describe_event() -> None:
    event = ReplayEventModel(
        id="evt-001-003",
        hand_number=1,
        street="preflop",
        actor="bot",
        action="raise",
        amount=6,
        pot=9,
        board=[],
        stacks={"human": 198, "bot": 194},
    )
    assert describe_event(event) == "Bot raises to 6"
    human_call = event.model_copy(update={"actor": "human", "action": "call", "amount": 4, "all_in": True})
    assert describe_event(human_call) == "You call 4 (all-in)"
    flop = event.model_copy(update={"actor": "system", "action": "flop_dealt", "board": ["Ah", "Kd", "2c"]})
    assert describe_event(flop) == "--- Flop: A♥ K♦ 2♣ (pot 9)"


def test_render_stats_lists_every_stat() -> None:
    text = render_stats(PlayerStatsModel(total_hands=10, vpip_hands=3), "Session")
    for abbrev in ("VPIP", "PFR", "3Bet", "Cbet", "FCbet", "WTSD", "W$SD", "AF", "BB/100"):
        assert abbrev in text
    assert "30%" in text


def test_console_plays_a_hand_and_reprompts_on_illegal_input(tmp_path: Path) -> None:
    store = StatsStore(tmp_path / "stats.json")
    session = HeadsUpSession(
        SessionConfig(seed=3, stats_path=tmp_path / "stats.json"),
        policy=DeterministicPolicy(),
        store=store,
    )
    inputs = iter(["k", "xyz", "s", "c", "k", "k", "k", "q"])
    lines: list[str] = []

    summary = run_console(session, input_fn=lambda _prompt: next(inputs), output=lines.append)

    text = "\n".join(lines)
    assert "Legal: fold, call 1, raise 4-200" in text
    assert "Unknown command" in text
    assert "VPIP" in text
    assert summary.hands_played == 1
    assert session.closed
    assert store.load().total_sessions == 1


def test_console_quit_mid_hand(tmp_path: Path) -> None:
    session = HeadsUpSession(SessionConfig(seed=3, stats_path=tmp_path / "stats.json"), policy=DeterministicPolicy())
    lines: list[str] = []
    summary = run_console(session, input_fn=lambda _prompt: "q", output=lines.append)

    assert summary.hands_played == 0
    assert "Session over." in lines[-1]


def test_console_handles_end_of_input(tmp_path: Path) -> None:
    session = HeadsUpSession(SessionConfig(seed=3, stats_path=tmp_path / "stats.json"), policy=DeterministicPolicy())

    def closed_input(_prompt: str) -> str:
        raise EOFError

    summary = run_console(session, input_fn=closed_input, output=lambda _line: None)
    assert summary.hands_played == 0
    assert session.closed


def test_main_rejects_bad_config(clean_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--stack", "0", "--stats-file", str(clean_env / "stats.json")]) == 2
    assert "Invalid configuration" in capsys.readouterr().err


def test_main_show_stats(clean_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = clean_env / "stats.json"
    StatsStore(path).save(PlayerStatsModel(total_hands=12, hands_won=7))

    assert main(["--show-stats", "--stats-file", str(path)]) == 0
    out = capsys.readouterr().out
    assert "Lifetime: 12 hands, 7 won" in out


def test_main_show_stats_with_corrupt_file(clean_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = clean_env / "stats.json"
    path.write_text("garbage", encoding="utf-8")

    assert main(["--show-stats", "--stats-file", str(path)]) == 0
    captured = capsys.readouterr()
    assert "Warning" in captured.err
    assert "Lifetime: 0 hands" in captured.out
