"""
guildcoins.api.routes.auth — Identity-provider callbacks
==========================================================

The frontend's OAuth integration verifies the Discord sign-in itself and
then reports the profile here so the member's existing coin row (created by
the bot before they ever visited the site) gets linked instead of
duplicated.
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import Field

from guildcoins.api.deps import AdminDep, EngineDep
from guildcoins.api.schemas import CamelModel, DiscordUserIn, success, user_dict
from guildcoins.constants import PROVIDER_DISCORD
from guildcoins.engine.profiles import AccountLink
from guildcoins.services import identity_service

router = APIRouter(prefix="/auth", tags=["auth"])


class AccountIn(CamelModel):
    provider_account_id: str = Field(max_length=100)
    provider: str = Field(default=PROVIDER_DISCORD, max_length=50)
    type: str = Field(default="oauth", max_length=20)


class DiscordSignIn(CamelModel):
    profile: DiscordUserIn
    account: AccountIn


@router.post("/discord/sign-in")
def discord_sign_in(body: DiscordSignIn, engine: EngineDep, _admin: AdminDep):
    result = identity_service.sign_in_discord(
        engine,
        body.profile.to_profile(),
        AccountLink(
            provider=body.account.provider,
            provider_account_id=body.account.provider_account_id,
            type=body.account.type,
        ),
    )
    return success(result=result.outcome.value, user=user_dict(result.user))
