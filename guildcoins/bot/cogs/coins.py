"""
guildcoins.bot.cogs.coins — Coin Slash Commands
=================================================

- /give-coins — admins mint coins for a member
- /pay — members pay each other from their own balance
- /balance — show a member's balance

The commands validate amounts before calling the ledger as a courtesy to the
user; the ledger validates again on its own.  Replies are ephemeral and
rendered in the community's configured locale.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from guildcoins.constants import MAX_COINS
from guildcoins.database.engine import run_db
from guildcoins.engine.profiles import DiscordProfile
from guildcoins.i18n import t
from guildcoins.services import ledger_service
from guildcoins.services.errors import LedgerError

if TYPE_CHECKING:
    from guildcoins.bot.core import CoinBot

logger = logging.getLogger(__name__)


def is_admin():
    """Decorator that checks if the user has the configured admin role."""
    async def predicate(interaction: discord.Interaction) -> bool:
        bot: CoinBot = interaction.client  # type: ignore[assignment]
        if not interaction.user or not hasattr(interaction.user, "roles"):
            return False
        admin_role_id = bot.cfg.admin_role_id
        return any(role.id == admin_role_id for role in interaction.user.roles)
    return app_commands.check(predicate)


def _give_cooldown(interaction: discord.Interaction) -> app_commands.Cooldown | None:
    return app_commands.Cooldown(1, interaction.client.cfg.give_cooldown_seconds)  # type: ignore[attr-defined]


def _pay_cooldown(interaction: discord.Interaction) -> app_commands.Cooldown | None:
    return app_commands.Cooldown(1, interaction.client.cfg.pay_cooldown_seconds)  # type: ignore[attr-defined]


def parse_amount(raw: str) -> int | None:
    """Whole number typed by the user, or ``None`` if it isn't one."""
    text = raw.strip()
    if not (text.isascii() and text.isdigit()) or len(text) > len(str(MAX_COINS)):
        return None
    return int(text)


class Coins(commands.Cog, name="Coins"):
    """Coin balance commands."""

    def __init__(self, bot: CoinBot) -> None:
        self.bot = bot

    @property
    def locale(self) -> str:
        return self.bot.cfg.locale

    async def _reply(self, interaction: discord.Interaction, content: str) -> None:
        await interaction.edit_original_response(content=content)

    # -------------------------------------------------------------------
    # /give-coins
    # -------------------------------------------------------------------
    @app_commands.command(name="give-coins", description=t("bot.give.description"))
    @app_commands.describe(user=t("bot.give.receiver"), coins=t("bot.give.amount"))
    @app_commands.checks.dynamic_cooldown(_give_cooldown)
    @is_admin()
    async def give_coins(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        coins: str,
    ) -> None:
        await interaction.response.defer(ephemeral=True)

        amount = parse_amount(coins)
        if amount is None or amount < 1:
            await self._reply(interaction, t("errors.invalid_amount", locale=self.locale))
            return

        try:
            await run_db(
                ledger_service.credit_discord_user,
                self.bot.engine,
                DiscordProfile.from_discord(user),
                amount,
            )
        except LedgerError as err:
            await self._reply(interaction, err.message(self.locale))
            return

        logger.info("%s gave %d coins to %s", interaction.user.id, amount, user.id)
        await self._reply(interaction, t(
            "bot.give.success",
            locale=self.locale,
            sender=interaction.user.mention,
            coins=amount,
            receiver=user.mention,
        ))

    # -------------------------------------------------------------------
    # /pay
    # -------------------------------------------------------------------
    @app_commands.command(name="pay", description=t("bot.pay.description"))
    @app_commands.describe(user=t("bot.pay.receiver"), coins=t("bot.pay.amount"))
    @app_commands.checks.dynamic_cooldown(_pay_cooldown)
    async def pay(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        coins: int,
    ) -> None:
        await interaction.response.defer(ephemeral=True)

        if coins < 1:
            await self._reply(interaction, t("errors.invalid_amount", locale=self.locale))
            return

        sender = DiscordProfile.from_discord(interaction.user)
        try:
            await run_db(
                ledger_service.transfer,
                self.bot.engine,
                sender,
                DiscordProfile.from_discord(user),
                coins,
                idempotency_key=f"discord:{interaction.id}",
            )
        except LedgerError as err:
            await self._reply(interaction, err.message(self.locale))
            return

        params = {"sender": interaction.user.mention, "coins": coins, "receiver": user.mention}
        # The coins already moved; a failed balance read only shortens the reply.
        try:
            sender_row = await run_db(
                ledger_service.get_user_by_discord_id, self.bot.engine, sender.id,
            )
        except LedgerError:
            logger.warning("Paid, but could not read the balance of %s", sender.id)
            await self._reply(
                interaction, t("bot.pay.success_no_balance", locale=self.locale, **params)
            )
            return

        await self._reply(interaction, t(
            "bot.pay.success",
            locale=self.locale,
            balance=sender_row.coins if sender_row else 0,
            **params,
        ))

    # -------------------------------------------------------------------
    # /balance
    # -------------------------------------------------------------------
    @app_commands.command(name="balance", description=t("bot.balance.description"))
    @app_commands.describe(user=t("bot.balance.member"))
    async def balance(
        self,
        interaction: discord.Interaction,
        user: discord.User | None = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True)

        target = user or interaction.user
        try:
            row = await run_db(
                ledger_service.ensure_discord_user,
                self.bot.engine,
                DiscordProfile.from_discord(target),
            )
        except LedgerError as err:
            await self._reply(interaction, err.message(self.locale))
            return

        if target.id == interaction.user.id:
            content = t("bot.balance.self", locale=self.locale, coins=row.coins)
        else:
            content = t(
                "bot.balance.other", locale=self.locale, member=target.mention, coins=row.coins,
            )
        await self._reply(interaction, content)

    # -------------------------------------------------------------------
    # Error handler for checks and cooldowns
    # -------------------------------------------------------------------
    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CommandOnCooldown):
            content = t("bot.cooldown", locale=self.locale, seconds=round(error.retry_after))
        elif isinstance(error, app_commands.CheckFailure):
            content = t("bot.not_allowed", locale=self.locale)
        else:
            raise error

        if interaction.response.is_done():
            await interaction.edit_original_response(content=content)
        else:
            await interaction.response.send_message(content, ephemeral=True)


async def setup(bot: CoinBot) -> None:
    await bot.add_cog(Coins(bot))
