"""
guildcoins.config — YAML Configuration Loader
==============================================

**Why this file exists:**
Secrets (bot token, database URL, JWT secret) come from ``.env``.  Everything
else a community owner may want to tune — which role counts as admin, which
language the bot answers in, command cooldowns — lives in ``config.yaml``.

Usage::

    from guildcoins.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.community_name)    # "Coins Dev"
    print(cfg.locale)            # "en"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class CoinsConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # Discord
    bot_prefix: str
    guild_id: int  # Primary guild snowflake

    # Admin / Hardened Access
    admin_role_id: int  # Discord role allowed to mint coins with /give-coins

    # Optional
    locale: str = "en"
    give_cooldown_seconds: int = 10
    pay_cooldown_seconds: int = 5


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> CoinsConfig:
    """Read *path* and return a :class:`CoinsConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return CoinsConfig(
        community_name=raw["community_name"],
        bot_prefix=raw["bot_prefix"],
        guild_id=int(raw["guild_id"]),
        admin_role_id=int(raw["admin_role_id"]),
        locale=str(raw.get("locale") or "en"),
        give_cooldown_seconds=int(raw.get("give_cooldown_seconds", 10)),
        pay_cooldown_seconds=int(raw.get("pay_cooldown_seconds", 5)),
    )
