from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Sequence

from .. import __version__
from .cards import Card
from .config import ConfigError, load_session_config
from .engine import PLAYER_NAMES, Action, IllegalActionError
from .models import (
    STAT_DEFINITIONS,
    LegalActionModel,
    PlayerStatsModel,
    ReplayEventModel,
    SessionSummaryModel,
    TableSnapshotModel,
)
from .persistence import StatsStore
from .session import HeadsUpSession

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]

HELP_TEXT = (
    "Commands: f=fold  k=check  c=call/check  b <to>=bet  r <to>=raise  "
    "a=all-in  s=stats  q=quit"
)


# Rendering ----------------------------------------------------------


def _card_text(label: str) -> str:
    if label == "??":
        return "??"
    return Card.parse(label).symbol


def _cards_text(labels: Sequence[str]) -> str:
    return " ".join(_card_text(label) for label in labels) if labels else "-"


# (second person, third person) per feed action.
_VERBS = {
    "post_small_blind": ("post the small blind", "posts the small blind"),
    "post_big_blind": ("post the big blind", "posts the big blind"),
    "fold": ("fold", "folds"),
    "check": ("check", "checks"),
    "call": ("call", "calls"),
    "bet": ("bet", "bets"),
    "raise": ("raise to", "raises to"),
    "uncalled_bet_returned": ("take back uncalled", "takes back uncalled"),
    "wins_pot": ("win the pot of", "wins the pot of"),
}


def describe_event(event: ReplayEventModel) -> str | None:
    action = event.action
    if action in {"flop_dealt", "turn_dealt", "river_dealt"}:
        street = action.split("_")[0].capitalize()
        return f"--- {street}: {_cards_text(event.board)} (pot {event.pot})"
    if action == "split_pot":
        return f"Pot of {event.amount} is split"
    if event.actor == "system" or action not in _VERBS:
        return None

    second, third = _VERBS[action]
    verb = second if event.actor == "human" else third
    amount = f" {event.amount}" if event.amount and action not in {"fold", "check"} else ""
    suffix = " (all-in)" if event.all_in and action in {"call", "bet", "raise"} else ""
    return f"{PLAYER_NAMES[event.actor]} {verb}{amount}{suffix}"


def render_legal(legal_actions: Sequence[LegalActionModel]) -> str:
    parts = []
    for item in legal_actions:
        if item.type in {"bet", "raise"}:
            parts.append(f"{item.type} {item.min_amount}-{item.max_amount}")
        elif item.type == "call":
            parts.append(f"call {item.to_call}")
        else:
            parts.append(item.type)
    return "Legal: " + ", ".join(parts) if parts else "No actions available."


def render_table(snapshot: TableSnapshotModel, pot_odds: tuple[float, float] | None = None) -> str:
    human = snapshot.players["human"]
    bot = snapshot.players["bot"]
    lines = [
        f"Hand #{snapshot.hand_number}  {snapshot.street.upper()}  Pot: {snapshot.pot}  "
        f"Blinds {snapshot.small_blind}/{snapshot.big_blind}",
        f"Board: {_cards_text(snapshot.board)}",
        f"Bot{' (BTN)' if bot.is_button else ''}: {_cards_text(bot.hole_cards)}  "
        f"stack {bot.stack}  bet {bot.committed}",
        f"You{' (BTN)' if human.is_button else ''}: {_cards_text(human.hole_cards)}  "
        f"stack {human.stack}  bet {human.committed}",
    ]
    if snapshot.actor_to_act == "human":
        lines.append(render_legal(snapshot.legal_actions))
        if pot_odds is not None:
            ratio, needed = pot_odds
            lines.append(f"Pot odds {ratio:.1f}:1, need {needed * 100:.0f}% equity")
    return "\n".join(lines)


def render_result(snapshot: TableSnapshotModel) -> str:
    result = snapshot.result
    if result is None:
        return ""
    lines = []
    if result.resolution == "showdown":
        for player_id, description in result.hands.items():
            cards = _cards_text(snapshot.players[player_id].hole_cards)
            lines.append(f"{PLAYER_NAMES[player_id]}: {cards}  {description}")
    if result.winner == "split":
        lines.append(f"Split pot of {result.pot}.")
    elif result.winner == "human":
        lines.append(f"You win {result.pot}.")
    else:
        lines.append(f"Bot wins {result.pot}.")
    return "\n".join(lines)


def _format_stat(stats: PlayerStatsModel, attribute: str) -> str:
    value = getattr(stats, attribute)
    if attribute == "aggression_factor":
        return f"{value:.1f}"
    if attribute == "bb_per_100":
        return f"{value:+.1f}"
    return f"{value:.0f}%"


def render_stats(stats: PlayerStatsModel, title: str) -> str:
    lines = [f"{title}: {stats.total_hands} hands, {stats.hands_won} won, net {stats.net_bb:+.1f} bb"]
    for definition in STAT_DEFINITIONS:
        lines.append(f"  {definition.abbrev:<7}{_format_stat(stats, definition.attribute):>8}  {definition.explanation}")
    if stats.biggest_pot_won:
        lines.append(f"  Biggest pot won: {stats.biggest_pot_won}")
    return "\n".join(lines)


def render_summary(summary: SessionSummaryModel) -> str:
    lines = [
        "Session over.",
        f"Hands played: {summary.hands_played}  won: {summary.hands_won}",
        f"Net: {summary.net_chips:+d} chips ({summary.net_bb:+.1f} bb)",
    ]
    if summary.biggest_pot_won:
        lines.append(f"Biggest pot won: {summary.biggest_pot_won}")
    if summary.busted == "bot":
        lines.append("The bot is out of chips.")
    elif summary.busted == "human":
        lines.append("You are out of chips.")
    return "\n".join(lines)


# Input --------------------------------------------------------------


def parse_command(raw: str, legal_actions: Sequence[LegalActionModel]) -> Action:
    """Turn a typed command into an :class:`Action`.

    Raises ``ValueError`` for input that is not a command at all; whether
    the action is legal is left to the engine.
    """
    parts = raw.strip().lower().split()
    if not parts:
        raise ValueError(HELP_TEXT)

    command = parts[0]
    legal = {item.type: item for item in legal_actions}
    aggressive = legal.get("bet") or legal.get("raise")

    if command in {"f", "fold"}:
        return Action.fold()
    if command in {"k", "check"}:
        return Action.check()
    if command in {"c", "call"}:
        return Action.check() if "check" in legal and "call" not in legal else Action.call()
    if command in {"a", "allin", "all-in"}:
        if aggressive is not None and aggressive.max_amount is not None:
            return Action(aggressive.type, aggressive.max_amount)
        return Action.call()
    if command in {"b", "bet", "r", "raise"}:
        if len(parts) != 2:
            raise ValueError(f"Usage: {command} <amount>")
        try:
            amount = int(parts[1])
        except ValueError:
            raise ValueError(f"Not a chip amount: {parts[1]!r}") from None
        if aggressive is not None:
            return Action(aggressive.type, amount)
        return Action("bet" if command.startswith("b") else "raise", amount)
    raise ValueError(f"Unknown command {command!r}. {HELP_TEXT}")


# Console loop -------------------------------------------------------


def _print_new_events(session: HeadsUpSession, output: OutputFn, shown: int) -> int:
    history = session.engine.hand_history()
    for event in history[shown:]:
        line = describe_event(event)
        if line:
            output(line)
    return len(history)


def _play_hand(session: HeadsUpSession, input_fn: InputFn, output: OutputFn) -> bool:
    """Play the current hand to completion; False if the player quit."""
    shown = _print_new_events(session, output, 0)
    while session.hand_in_progress:
        output(render_table(session.get_state(), session.engine.pot_odds("human")))
        raw = input_fn("> ")
        command = raw.strip().lower()
        if command in {"q", "quit"}:
            return False
        if command in {"s", "stats"}:
            output(render_stats(session.player_stats(), "Session"))
            continue
        if command in {"?", "h", "help"}:
            output(HELP_TEXT)
            continue

        try:
            action = parse_command(raw, session.legal_actions())
            session.process_human_action(action)
        except IllegalActionError as exc:
            output(str(exc))
            output(render_legal(exc.legal_actions or session.legal_actions()))
            continue
        except ValueError as exc:
            output(str(exc))
            continue
        shown = _print_new_events(session, output, shown)

    snapshot = session.get_state()
    output(render_table(snapshot))
    output(render_result(snapshot))
    return True


def run_console(
    session: HeadsUpSession,
    input_fn: InputFn = input,
    output: OutputFn = print,
) -> SessionSummaryModel:
    output(HELP_TEXT)
    if session.persistence_warning:
        output(f"Warning: {session.persistence_warning}. Lifetime stats were reset.")
    try:
        while not session.is_over:
            session.start_next_hand()
            if not _play_hand(session, input_fn, output) or session.is_over:
                break
            reply = input_fn("Enter = next hand, s = stats, q = quit: ").strip().lower()
            while reply in {"s", "stats"}:
                output(render_stats(session.player_stats(), "Session"))
                output(render_stats(session.player_stats(scope="lifetime"), "Lifetime"))
                reply = input_fn("Enter = next hand, q = quit: ").strip().lower()
            if reply in {"q", "quit"}:
                break
    except (EOFError, KeyboardInterrupt):
        logger.info("Input closed, ending session mid-hand=%s", session.hand_in_progress)
        output("")

    summary = session.close()
    output(render_summary(summary))
    return summary


# CLI ----------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="terminal-poker",
        description="Heads-up No-Limit Texas Hold'em against a rule-based bot",
    )
    parser.add_argument("--stack", type=int, default=None, help="Starting stack in big blinds (default 100)")
    parser.add_argument(
        "--aggression",
        type=float,
        default=None,
        help="Bot aggression from 0.0 (passive) to 1.0 (aggressive), default 0.5",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for a reproducible session")
    parser.add_argument("--stats-file", default=None, help="Path of the lifetime stats file")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
    )
    parser.add_argument("--show-stats", action="store_true", help="Print lifetime stats and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_session_config(
            stack_bb=args.stack,
            aggression=args.aggression,
            seed=args.seed,
            stats_path=args.stats_file,
        )
    except ConfigError as exc:
        print(f"terminal-poker: {exc}", file=sys.stderr)
        return 2

    store = StatsStore(config.stats_path)
    if args.show_stats:
        lifetime = store.load()
        if store.warning:
            print(f"Warning: {store.warning}", file=sys.stderr)
        print(render_stats(lifetime, "Lifetime"))
        return 0

    session = HeadsUpSession(config, store=store)
    run_console(session)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
