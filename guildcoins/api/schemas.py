"""
guildcoins.api.schemas — Shared request models & serializers
==============================================================

The web frontend speaks camelCase JSON; Python stays snake_case.  Every
request model inherits the alias generator from :class:`CamelModel`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from guildcoins.constants import STATUS_SUCCESS
from guildcoins.database.models import User
from guildcoins.engine.profiles import DiscordProfile, GithubProfile


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DiscordUserIn(CamelModel):
    id: str = Field(max_length=32)
    username: str = Field(max_length=100)
    avatar: str | None = Field(default=None, max_length=100)
    discriminator: str = Field(default="0", max_length=8)
    email: str | None = Field(default=None, max_length=255)

    def to_profile(self) -> DiscordProfile:
        return DiscordProfile(
            id=self.id,
            username=self.username,
            discriminator=self.discriminator,
            avatar=self.avatar,
            email=self.email,
        )


class GithubUserIn(CamelModel):
    id: str = Field(max_length=32)
    login: str = Field(max_length=39)
    name: str = Field(max_length=100)
    email: str | None = Field(default=None, max_length=255)
    avatar_url: str = Field(max_length=500)

    def to_profile(self) -> GithubProfile:
        return GithubProfile(
            id=self.id,
            login=self.login,
            name=self.name,
            email=self.email,
            avatar_url=self.avatar_url,
        )


def user_dict(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "discordId": u.discord_id,
        "discordUserName": u.discord_user_name,
        "discordDiscriminator": u.discord_discriminator,
        "githubId": u.github_id,
        "githubUserName": u.github_user_name,
        "thumbnail": u.thumbnail,
        "coins": u.coins,
        "createdAt": u.created_at.isoformat() if u.created_at else None,
        "updatedAt": u.updated_at.isoformat() if u.updated_at else None,
    }


def success(**data) -> dict:
    return {"status": STATUS_SUCCESS, "data": data}
