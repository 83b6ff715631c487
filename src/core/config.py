"""
Runtime settings.

Defaults can be overridden from a TOML file (path in CHECKERS_CONFIG_TOML), e.g.

    log_level = "DEBUG"

    [search]
    max_depth = 4
    timeout_ms = 800

    [rules]
    draw_half_move_limit = 60

    [store]
    database_url = "sqlite:///checkers.db"

CHECKERS_DATABASE_URL and CHECKERS_LOG_LEVEL environment variables win over the file.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from typing import Any


@dataclass
class SearchSettings:
    max_depth: int = 3
    # kept small: long capture chains explode the quiescence tree
    max_q_depth: int = 2
    timeout_ms: int = 500


@dataclass
class RulesSettings:
    # half-moves without a capture or a man move before the game is declared a draw
    draw_half_move_limit: int = 60


@dataclass
class StoreSettings:
    database_url: str = "sqlite:///checkers.db"
    game_ttl_hours: int = 24
    transaction_attempts: int = 5


@dataclass
class Settings:
    search: SearchSettings = field(default_factory=SearchSettings)
    rules: RulesSettings = field(default_factory=RulesSettings)
    store: StoreSettings = field(default_factory=StoreSettings)
    log_level: str = "INFO"
    bot_player_id: str = "bot"

    @classmethod
    def load_from_toml(cls, path: str = "checkers.toml") -> "Settings":
        """Missing file simply means: use the defaults."""
        settings = cls()
        if os.path.exists(path):
            with open(path, "rb") as f:
                raw = tomllib.load(f)
            settings._merge(raw)
        settings._apply_env_overrides()
        return settings

    def _merge(self, raw: dict[str, Any]) -> None:
        for section in ("search", "rules", "store"):
            for key, value in raw.get(section, {}).items():
                target = getattr(self, section)
                if hasattr(target, key):
                    setattr(target, key, value)
        for key in ("log_level", "bot_player_id"):
            if key in raw:
                setattr(self, key, raw[key])

    def _apply_env_overrides(self) -> None:
        database_url = os.environ.get("CHECKERS_DATABASE_URL")
        if database_url:
            self.store.database_url = database_url
        log_level = os.environ.get("CHECKERS_LOG_LEVEL")
        if log_level:
            self.log_level = log_level


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# single globally importable settings instance
SETTINGS = Settings.load_from_toml(os.environ.get("CHECKERS_CONFIG_TOML", "checkers.toml"))
