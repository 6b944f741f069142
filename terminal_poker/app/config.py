from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .engine import BIG_BLIND
from .persistence import default_stats_path

logger = logging.getLogger(__name__)

ENV_STACK = "TERMINAL_POKER_STACK"
ENV_AGGRESSION = "TERMINAL_POKER_AGGRESSION"
ENV_SEED = "TERMINAL_POKER_SEED"
ENV_STATS_FILE = "TERMINAL_POKER_STATS_FILE"


class ConfigError(ValueError):
    pass


class SessionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    stack_bb: int = Field(default=100, gt=0)
    aggression: float = Field(default=0.5, ge=0.0, le=1.0, allow_inf_nan=False)
    seed: Optional[int] = None
    stats_path: Path = Field(default_factory=default_stats_path)

    @property
    def starting_chips(self) -> int:
        return self.stack_bb * BIG_BLIND


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path) -> None:
    if not path.is_file():
        return

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = line.split("=", 1)
        env_key = key.strip()
        if env_key.startswith("export "):
            env_key = env_key[len("export "):].strip()
        if not env_key:
            continue

        # Exported variables win over file values.
        os.environ.setdefault(env_key, _strip_quotes(value.strip()))


def load_environment(env_file: Path | None = None) -> None:
    _load_env_file(env_file if env_file is not None else Path.cwd() / ".env")


def _env_value(name: str, parse: Callable[[str], Any]) -> Any:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return parse(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name}={raw!r} is not valid: {exc}") from exc


def load_session_config(
    stack_bb: int | None = None,
    aggression: float | None = None,
    seed: int | None = None,
    stats_path: Path | str | None = None,
    env_file: Path | None = None,
) -> SessionConfig:
    """Resolve the session config from ``.env``, the environment and explicit overrides.

    Explicit arguments win over environment variables, which win over the
    ``.env`` file. Raises :class:`ConfigError` on any invalid value.
    """
    load_environment(env_file)

    values: dict[str, Any] = {
        "stack_bb": _env_value(ENV_STACK, int),
        "aggression": _env_value(ENV_AGGRESSION, float),
        "seed": _env_value(ENV_SEED, int),
        "stats_path": _env_value(ENV_STATS_FILE, lambda raw: Path(raw).expanduser()),
    }
    overrides = {"stack_bb": stack_bb, "aggression": aggression, "seed": seed, "stats_path": stats_path}
    values.update({key: value for key, value in overrides.items() if value is not None})

    try:
        config = SessionConfig(**{key: value for key, value in values.items() if value is not None})
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise ConfigError(f"Invalid configuration: {details}") from exc

    logger.debug(
        "Session config: stack=%sbb aggression=%.2f seed=%s stats=%s",
        config.stack_bb,
        config.aggression,
        config.seed,
        config.stats_path,
    )
    return config
