"""
tests/test_coins_cog.py — Slash-command behaviour of the Coins cog
====================================================================
Commands are invoked through their raw callbacks with mocked interactions
and a real in-memory database behind ``bot.engine``.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from discord import app_commands

from guildcoins.bot.cogs.coins import Coins, parse_amount
from guildcoins.constants import MAX_COINS
from guildcoins.engine.profiles import DiscordProfile
from guildcoins.services import ledger_service
from guildcoins.services.errors import PersistenceUnavailable


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _member(member_id: int, name: str, *, role_ids: tuple[int, ...] = ()) -> SimpleNamespace:
    return SimpleNamespace(
        id=member_id,
        name=name,
        discriminator="0",
        avatar=None,
        mention=f"<@{member_id}>",
        roles=[SimpleNamespace(id=r) for r in role_ids],
    )


def _interaction(bot, user, *, interaction_id: int = 555) -> MagicMock:
    interaction = MagicMock()
    interaction.id = interaction_id
    interaction.user = user
    interaction.client = bot
    interaction.response.defer = AsyncMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.is_done = MagicMock(return_value=True)
    interaction.edit_original_response = AsyncMock()
    return interaction


def _reply(interaction) -> str:
    return interaction.edit_original_response.await_args.kwargs["content"]


@pytest.fixture
def bot(db_engine):
    cfg = SimpleNamespace(
        locale="en",
        admin_role_id=42,
        give_cooldown_seconds=10,
        pay_cooldown_seconds=5,
    )
    return SimpleNamespace(engine=db_engine, cfg=cfg)


@pytest.fixture
def cog(bot):
    return Coins(bot)


ADMIN = _member(1, "admin", role_ids=(42,))
ADA = _member(2, "ada")
BOB = _member(3, "bob")


class TestParseAmount:
    @pytest.mark.parametrize("raw,expected", [("10", 10), (" 7 ", 7)])
    def test_numbers(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["ten", "1.5", "", "-1", "1_000", "\u0661\u0665", "9" * 5000])
    def test_not_numbers(self, raw):
        assert parse_amount(raw) is None


class TestGiveCoins:
    def test_gives_coins(self, cog, bot, db_engine):
        interaction = _interaction(bot, ADMIN)

        run_async(Coins.give_coins.callback(cog, interaction, ADA, "10"))

        interaction.response.defer.assert_awaited_once_with(ephemeral=True)
        assert _reply(interaction) == "<@1> gave 10 🪙 to <@2>."
        assert ledger_service.get_user_by_discord_id(db_engine, "2").coins == 10

    @pytest.mark.parametrize("raw", ["abc", "0", "-5", str(MAX_COINS + 1)])
    def test_rejects_bad_amount(self, cog, bot, db_engine, raw):
        interaction = _interaction(bot, ADMIN)

        run_async(Coins.give_coins.callback(cog, interaction, ADA, raw))

        assert _reply(interaction) == "The amount must be a whole number greater than zero."
        assert ledger_service.get_user_by_discord_id(db_engine, "2") is None

    def test_replies_in_configured_locale(self, cog, bot):
        bot.cfg.locale = "es"
        interaction = _interaction(bot, ADMIN)

        run_async(Coins.give_coins.callback(cog, interaction, ADA, "nada"))

        assert _reply(interaction).startswith("La cantidad")


class TestPay:
    def test_pays_and_reports_balance(self, cog, bot, db_engine):
        ledger_service.credit_discord_user(db_engine, DiscordProfile(id="2", username="ada"), 50)
        interaction = _interaction(bot, ADA)

        run_async(Coins.pay.callback(cog, interaction, BOB, 20))

        assert _reply(interaction) == (
            "<@2> paid 20 🪙 to <@3>. Your new balance is 30 🪙."
        )
        assert ledger_service.get_user_by_discord_id(db_engine, "3").coins == 20

    def test_insufficient_balance(self, cog, bot, db_engine):
        interaction = _interaction(bot, ADA)

        run_async(Coins.pay.callback(cog, interaction, BOB, 20))

        assert _reply(interaction) == "You don't have enough coins for this transaction."
        assert ledger_service.get_user_by_discord_id(db_engine, "3") is None

    def test_same_interaction_is_not_charged_twice(self, cog, bot, db_engine):
        ledger_service.credit_discord_user(db_engine, DiscordProfile(id="2", username="ada"), 50)

        for _ in range(2):
            run_async(Coins.pay.callback(cog, _interaction(bot, ADA, interaction_id=9), BOB, 20))

        assert ledger_service.get_user_by_discord_id(db_engine, "2").coins == 30
        assert ledger_service.get_user_by_discord_id(db_engine, "3").coins == 20

    def test_balance_read_failure_still_confirms_payment(self, cog, bot, db_engine, monkeypatch):
        ledger_service.credit_discord_user(db_engine, DiscordProfile(id="2", username="ada"), 50)

        def _unavailable(*args, **kwargs):
            raise PersistenceUnavailable("connection dropped")

        monkeypatch.setattr(ledger_service, "get_user_by_discord_id", _unavailable)
        interaction = _interaction(bot, ADA)

        run_async(Coins.pay.callback(cog, interaction, BOB, 20))

        assert _reply(interaction) == "<@2> paid 20 🪙 to <@3>."
        monkeypatch.undo()
        assert ledger_service.get_user_by_discord_id(db_engine, "2").coins == 30

    def test_zero_is_rejected(self, cog, bot):
        interaction = _interaction(bot, ADA)

        run_async(Coins.pay.callback(cog, interaction, BOB, 0))

        assert _reply(interaction) == "The amount must be a whole number greater than zero."

    def test_self_payment_is_rejected(self, cog, bot, db_engine):
        ledger_service.credit_discord_user(db_engine, DiscordProfile(id="2", username="ada"), 5)
        interaction = _interaction(bot, ADA)

        run_async(Coins.pay.callback(cog, interaction, ADA, 1))

        assert _reply(interaction) == "You can't send coins to yourself."


class TestBalance:
    def test_own_balance_provisions_user(self, cog, bot, db_engine):
        interaction = _interaction(bot, ADA)

        run_async(Coins.balance.callback(cog, interaction, None))

        assert _reply(interaction) == "You have 0 🪙."
        assert ledger_service.get_user_by_discord_id(db_engine, "2") is not None

    def test_other_member_balance(self, cog, bot, db_engine):
        ledger_service.credit_discord_user(db_engine, DiscordProfile(id="3", username="bob"), 8)
        interaction = _interaction(bot, ADA)

        run_async(Coins.balance.callback(cog, interaction, BOB))

        assert _reply(interaction) == "<@3> has 8 🪙."


class TestCommandErrors:
    def test_check_failure_before_response(self, cog, bot):
        interaction = _interaction(bot, ADA)
        interaction.response.is_done.return_value = False

        run_async(cog.cog_app_command_error(interaction, app_commands.CheckFailure()))

        interaction.response.send_message.assert_awaited_once_with(
            "🔒 You are not allowed to use this command.", ephemeral=True,
        )

    def test_cooldown_after_defer(self, cog, bot):
        interaction = _interaction(bot, ADA)
        error = app_commands.CommandOnCooldown(app_commands.Cooldown(1, 10), 4.2)

        run_async(cog.cog_app_command_error(interaction, error))

        assert _reply(interaction) == "⏳ Slow down! Try again in 4 seconds."

    def test_other_errors_propagate(self, cog, bot):
        interaction = _interaction(bot, ADA)
        with pytest.raises(app_commands.AppCommandError):
            run_async(cog.cog_app_command_error(interaction, app_commands.AppCommandError()))


class TestIsAdmin:
    def _predicate(self):
        from guildcoins.bot.cogs.coins import is_admin

        # app_commands.check stores the predicate on the decorated function.
        def _cmd():
            pass

        return is_admin()(_cmd).__discord_app_commands_checks__[0]

    def test_admin_role_passes(self, bot):
        assert run_async(self._predicate()(_interaction(bot, ADMIN))) is True

    def test_member_without_role_fails(self, bot):
        assert run_async(self._predicate()(_interaction(bot, ADA))) is False
