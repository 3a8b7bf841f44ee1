"""
guildcoins.engine.profiles — External Identity Profiles
========================================================

Plain value objects describing the person on the other end of a command or
API call.  The bot builds them from ``discord.User`` objects, the API from
request bodies; the ledger only ever sees these.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DiscordProfile:
    """A Discord account as the gateway reports it.

    ``avatar`` is the avatar *hash* (``None`` when the user never uploaded
    one), not a URL.
    """

    id: str
    username: str
    discriminator: str = "0"
    avatar: str | None = None
    email: str | None = None

    @classmethod
    def from_discord(cls, user) -> DiscordProfile:
        """Build from a ``discord.User`` / ``discord.Member``."""
        return cls(
            id=str(user.id),
            username=user.name,
            discriminator=str(user.discriminator),
            avatar=user.avatar.key if user.avatar else None,
        )


@dataclass(frozen=True, slots=True)
class GithubProfile:
    """A GitHub account; ``avatar_url`` is already a full URL."""

    id: str
    login: str
    name: str
    email: str | None
    avatar_url: str


@dataclass(frozen=True, slots=True)
class AccountLink:
    """The provider account an identity-provider sign-in arrived with."""

    provider: str
    provider_account_id: str
    type: str = "oauth"
