"""
guildcoins.i18n — Message Catalogs
===================================

Human-readable strings live in ``guildcoins/locales/<locale>.yaml``, nested
by area (``errors``, ``bot``, …).  :func:`t` looks a dotted key up in the
requested locale, falls back to English, and finally to the key itself so a
missing translation never crashes a command.

Usage::

    from guildcoins.i18n import t

    t("errors.insufficient_balance", locale="es")
    t("bot.give.success", sender="<@1>", coins=10, receiver="<@2>")
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

LOCALES_DIR = Path(__file__).parent / "locales"
DEFAULT_LOCALE = "en"


def _flatten(tree: dict, prefix: str = "") -> dict[str, str]:
    flat: dict[str, str] = {}
    for key, value in tree.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = str(value)
    return flat


@lru_cache(maxsize=None)
def load_catalog(locale: str) -> dict[str, str]:
    """Return the flattened catalog for *locale* (empty if there is none)."""
    path = LOCALES_DIR / f"{locale}.yaml"
    if not path.exists():
        logger.warning("No message catalog for locale %r", locale)
        return {}
    with open(path, encoding="utf-8") as fh:
        return _flatten(yaml.safe_load(fh) or {})


def available_locales() -> list[str]:
    return sorted(p.stem for p in LOCALES_DIR.glob("*.yaml"))


def t(key: str, locale: str | None = None, **params: object) -> str:
    """Translate *key*, formatting ``{placeholders}`` with *params*."""
    template = load_catalog(locale or DEFAULT_LOCALE).get(key)
    if template is None:
        template = load_catalog(DEFAULT_LOCALE).get(key, key)
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        logger.warning("Message %r is missing a placeholder value", key)
        return template
