"""Heads-up No-Limit Texas Hold'em trainer: engine, rule-based bot and stats."""

__version__ = "0.1.0"
