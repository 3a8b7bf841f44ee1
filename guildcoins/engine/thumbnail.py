"""
guildcoins.engine.thumbnail — Avatar → CDN URL
===============================================

Pure function, no I/O.  Discord hands out an avatar *hash*; the picture
lives on the CDN under the user's id.  Animated avatars have hashes that
start with ``a_`` and are served as GIFs.  Users without an avatar get one
of the five stock avatars, picked by their discriminator.
"""

from __future__ import annotations

from typing import Protocol

from guildcoins.constants import DEFAULT_AVATAR_COUNT, DISCORD_CDN


class HasAvatar(Protocol):
    id: str
    avatar: str | None
    discriminator: str


def default_avatar_index(discriminator: str) -> int:
    """``int(discriminator) % 5``; discriminators that aren't numbers map to 0."""
    try:
        return int(discriminator) % DEFAULT_AVATAR_COUNT
    except (TypeError, ValueError):
        return 0


def resolve_thumbnail(profile: HasAvatar) -> str:
    """Return the display-image URL for a Discord profile."""
    if profile.avatar is None:
        index = default_avatar_index(profile.discriminator)
        return f"{DISCORD_CDN}/embed/avatars/{index}.png"

    ext = "gif" if profile.avatar.startswith("a_") else "png"
    return f"{DISCORD_CDN}/avatars/{profile.id}/{profile.avatar}.{ext}"
