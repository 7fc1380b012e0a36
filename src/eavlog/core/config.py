"""Configuration for attaching an event sink to Python logging."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from eavlog.core.errors import ConfigError

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass
class SinkConfig:
    """Configuration for ``configure_logging``.

    Attributes:
        db_path: SQLite database file (or ``:memory:``). Required.
        level: Minimum level name attached to the logger.
        with_caller: Store module, funcName, lineno and pathname per event.
        session: Session identifier stamped on every event.
        interned_names: Attribute names promoted into the registry at startup.
    """

    db_path: str | None = None
    level: str = "info"
    with_caller: bool = False
    session: str | None = None
    interned_names: tuple[str, ...] = ()

    def level_number(self) -> int:
        """Return the ``logging`` level for ``self.level``.

        Raises:
            ConfigError: The level name is not recognized.
        """
        try:
            return _LEVELS[self.level.lower()]
        except KeyError:
            raise ConfigError(f"unknown log level '{self.level}'") from None

    @classmethod
    def from_env(
        cls, prefix: str = "EAVLOG_", environ: Mapping[str, str] | None = None
    ) -> "SinkConfig":
        """Build a config from environment variables.

        Reads ``<prefix>DB``, ``<prefix>LEVEL``, ``<prefix>WITH_CALLER``,
        ``<prefix>SESSION`` and ``<prefix>INTERNED_NAMES`` (comma separated).
        Missing variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        names = env.get(f"{prefix}INTERNED_NAMES", "")
        return cls(
            db_path=env.get(f"{prefix}DB") or None,
            level=env.get(f"{prefix}LEVEL", "info"),
            with_caller=env.get(f"{prefix}WITH_CALLER", "").lower() in _TRUE_VALUES,
            session=env.get(f"{prefix}SESSION") or None,
            interned_names=tuple(n.strip() for n in names.split(",") if n.strip()),
        )
