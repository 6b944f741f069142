"""Lifetime stats file.

Stats live in a single JSON document under the user's data directory
(``$XDG_DATA_HOME/terminal-poker/stats.json``). A missing file means a new
player; an unreadable one is reported and replaced by zeroed counters on the
next save rather than stopping the game.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .models import PlayerStatsModel

logger = logging.getLogger(__name__)

STATS_FILE_VERSION = 1


class PersistenceCorrupt(ValueError):
    pass


class StatsFileModel(BaseModel):
    version: int = STATS_FILE_VERSION
    lifetime: PlayerStatsModel = Field(default_factory=PlayerStatsModel)


def default_stats_path() -> Path:
    data_home = os.environ.get("XDG_DATA_HOME")
    base = Path(data_home) if data_home else Path.home() / ".local" / "share"
    return base / "terminal-poker" / "stats.json"


class StatsStore:
    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path else default_stats_path()
        self.warning: str | None = None

    def read(self) -> PlayerStatsModel:
        """Read the stats file, raising :class:`PersistenceCorrupt` if it is unusable."""
        if not self.path.exists():
            return PlayerStatsModel()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceCorrupt(f"Could not read stats file {self.path}: {exc}") from exc
        try:
            document = StatsFileModel.model_validate_json(raw)
        except ValidationError as exc:
            raise PersistenceCorrupt(f"Stats file {self.path} is malformed: {exc.error_count()} error(s)") from exc
        if document.version != STATS_FILE_VERSION:
            raise PersistenceCorrupt(f"Unsupported stats file version {document.version} in {self.path}")
        return document.lifetime

    def load(self) -> PlayerStatsModel:
        self.warning = None
        try:
            return self.read()
        except PersistenceCorrupt as exc:
            logger.warning("%s; starting from zero", exc)
            self.warning = str(exc)
            return PlayerStatsModel()

    def save(self, stats: PlayerStatsModel) -> bool:
        document = StatsFileModel(lifetime=stats)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.warning("Could not save stats to %s: %s", self.path, exc)
            if tmp_path.exists():
                tmp_path.unlink()
            return False
        logger.debug("Saved lifetime stats to %s", self.path)
        return True
