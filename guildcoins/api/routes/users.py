"""
guildcoins.api.routes.users — ``user.*`` procedures
=====================================================

RPC-style endpoints, one per procedure name (``/api/user/getByDiscordId``,
``/api/user/payCoinsByUserId`` …).  Reads are public; anything that creates
users or moves coins needs an admin bearer token.

Routes stay thin: they translate camelCase bodies into profiles and call
:mod:`guildcoins.services.ledger_service`, whose classified errors are
rendered by the handler in :mod:`guildcoins.api.main`.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import Field

from guildcoins.api.deps import AdminDep, EngineDep
from guildcoins.api.schemas import (
    CamelModel,
    DiscordUserIn,
    GithubUserIn,
    success,
    user_dict,
)
from guildcoins.services import ledger_service

router = APIRouter(prefix="/user", tags=["user"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class UserCreate(CamelModel):
    name: str = Field(max_length=100)
    email: str | None = Field(default=None, max_length=255)
    discord_id: str | None = Field(default=None, max_length=32)
    discord_user_name: str | None = Field(default=None, max_length=100)
    discord_discriminator: str | None = Field(default=None, max_length=8)
    thumbnail: str = Field(default="", max_length=500)
    coins: int = 0
    github_username: str | None = Field(default=None, max_length=39)
    github_user_id: str | None = Field(default=None, max_length=32)


class SendCoinsByUserId(CamelModel):
    user: DiscordUserIn
    coins: int


class SendCoinsByGithubId(CamelModel):
    user: GithubUserIn
    coins: str


class PayCoinsByUserId(CamelModel):
    sender: DiscordUserIn
    receiver: DiscordUserIn
    coins: int
    idempotency_key: str | None = Field(default=None, max_length=100)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
@router.get("/getByDiscordId")
def get_by_discord_id(
    engine: EngineDep,
    discord_id: Annotated[str, Query(alias="discordId")],
):
    user = ledger_service.get_user_by_discord_id(engine, discord_id)
    return user_dict(user) if user else None


@router.get("/getByEmail")
def get_by_email(engine: EngineDep, email: str):
    user = ledger_service.get_user_by_email(engine, email)
    return user_dict(user) if user else None


@router.get("/getAll")
def get_all(engine: EngineDep):
    return [user_dict(u) for u in ledger_service.get_all_users(engine)]


@router.get("/getById")
def get_by_id(engine: EngineDep, id: str):
    return user_dict(ledger_service.get_user(engine, id))


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
@router.post("/create")
def create(body: UserCreate, engine: EngineDep, _admin: AdminDep):
    user = ledger_service.create_user(
        engine,
        name=body.name,
        email=body.email,
        discord_id=body.discord_id,
        discord_user_name=body.discord_user_name,
        discord_discriminator=body.discord_discriminator,
        github_id=body.github_user_id,
        github_user_name=body.github_username,
        thumbnail=body.thumbnail,
        coins=body.coins,
    )
    return success(user=user_dict(user))


@router.post("/sendCoinsByUserId")
def send_coins_by_user_id(body: SendCoinsByUserId, engine: EngineDep, _admin: AdminDep):
    user = ledger_service.credit_discord_user(engine, body.user.to_profile(), body.coins)
    return success(user=user_dict(user))


@router.post("/sendCoinsByGithubId")
def send_coins_by_github_id(body: SendCoinsByGithubId, engine: EngineDep, _admin: AdminDep):
    user = ledger_service.credit_github_user(engine, body.user.to_profile(), body.coins)
    return success(user=user_dict(user))


@router.post("/payCoinsByUserId")
def pay_coins_by_user_id(body: PayCoinsByUserId, engine: EngineDep, _admin: AdminDep):
    receiver = ledger_service.transfer(
        engine,
        body.sender.to_profile(),
        body.receiver.to_profile(),
        body.coins,
        idempotency_key=body.idempotency_key,
    )
    return success(receiver=user_dict(receiver))
