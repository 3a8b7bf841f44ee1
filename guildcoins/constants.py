"""
guildcoins.constants — Shared Constants
========================================

Single source of truth for CDN URLs, provider names and response statuses.
Import from here instead of duplicating in cogs, services, and routes.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Discord CDN
# ---------------------------------------------------------------------------
DISCORD_CDN = "https://cdn.discordapp.com"
DEFAULT_AVATAR_COUNT = 5  # embed/avatars/0.png … 4.png

# ---------------------------------------------------------------------------
# Identity providers (Account.provider values)
# ---------------------------------------------------------------------------
PROVIDER_DISCORD = "discord"

# ---------------------------------------------------------------------------
# API response envelope
# ---------------------------------------------------------------------------
STATUS_SUCCESS = "success"
STATUS_ERROR = "error"

# ---------------------------------------------------------------------------
# Ledger limits
# ---------------------------------------------------------------------------
# Largest amount a single credit, transfer or initial balance may carry.
# Balances are BIGINT, so this leaves room for millions of maximal credits.
MAX_COINS = 1_000_000_000_000
