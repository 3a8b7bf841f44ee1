"""
guildcoins.services.identity_service — Discord Sign-In Account Linking
=======================================================================

Called by the web frontend's identity-provider integration after a Discord
OAuth sign-in.  Members often receive coins from the bot *before* they ever
sign in to the website, so the row may already exist under their Discord id
or username.  This module stitches the two together:

1. Known ``(provider, provider_account_id)`` → nothing to do.
2. A user already carries this Discord id (or, failing that, username) →
   adopt it: refresh the Discord id, username and email, then link the
   account.
3. Otherwise create a fresh user from the profile and link it.

Token verification and session handling stay with the identity provider.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from guildcoins.database.models import Account, User
from guildcoins.engine.profiles import AccountLink, DiscordProfile
from guildcoins.engine.thumbnail import resolve_thumbnail
from guildcoins.services.errors import ledger_operation

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class SignInOutcome(enum.StrEnum):
    ALREADY_LINKED = "already_linked"
    LINKED_EXISTING = "linked_existing"
    CREATED = "created"


@dataclass(frozen=True, slots=True)
class SignInResult:
    outcome: SignInOutcome
    user: User


def discord_profile_fields(profile: DiscordProfile) -> dict[str, str | None]:
    """User column values for a Discord profile, thumbnail included."""
    return {
        "name": profile.username,
        "email": profile.email,
        "discord_id": profile.id,
        "discord_user_name": profile.username,
        "discord_discriminator": profile.discriminator,
        "thumbnail": resolve_thumbnail(profile),
    }


@ledger_operation
def sign_in_discord(
    engine: Engine, profile: DiscordProfile, account: AccountLink
) -> SignInResult:
    """Resolve (and if needed create) the user behind a Discord sign-in."""
    with Session(engine, expire_on_commit=False) as session:
        linked = session.scalar(
            select(Account).where(
                Account.provider == account.provider,
                Account.provider_account_id == account.provider_account_id,
            )
        )
        if linked is not None:
            user = session.get(User, linked.user_id)
            session.expunge(user)
            return SignInResult(SignInOutcome.ALREADY_LINKED, user)

        # By Discord id first: the member may have been renamed since the
        # bot created their row.
        user = session.scalar(select(User).where(User.discord_id == profile.id))
        if user is None:
            user = session.scalar(
                select(User).where(User.discord_user_name == profile.username)
            )
        if user is not None:
            user.discord_id = profile.id
            user.discord_user_name = profile.username
            user.email = profile.email
            outcome = SignInOutcome.LINKED_EXISTING
        else:
            user = User(**discord_profile_fields(profile))
            session.add(user)
            session.flush()
            outcome = SignInOutcome.CREATED

        session.add(Account(
            user_id=user.id,
            type=account.type,
            provider=account.provider,
            provider_account_id=account.provider_account_id,
        ))
        session.commit()
        session.refresh(user)
        session.expunge(user)
        logger.info(
            "Discord sign-in %s for user %s (%s:%s)",
            outcome.value, user.id, account.provider, account.provider_account_id,
        )
        return SignInResult(outcome, user)
