"""
guildcoins.services.ledger_service — Coin Ledger Operations
============================================================

Shared service module callable by both the bot and the HTTP API.  Every
function opens its own session, does its work in one transaction, and
returns detached ``User`` rows.  No balance is ever cached between calls.

Operations:
- create_user          — explicit provisioning
- credit_*_user        — mint coins to a Discord or GitHub identity,
                         creating the user on first contact
- transfer             — move coins between two Discord identities
- get_* / ensure_*     — lookups

The transfer relies on a conditional decrement
(``UPDATE … WHERE coins >= :amount``) inside the same transaction as the
receiver credit, so two concurrent transfers can never both spend the same
balance, and a failed credit rolls the debit back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import InstrumentedAttribute, Session

from guildcoins.constants import MAX_COINS
from guildcoins.database.engine import get_session
from guildcoins.database.models import CoinTransaction, TransactionKind, User
from guildcoins.engine.profiles import DiscordProfile, GithubProfile
from guildcoins.engine.thumbnail import resolve_thumbnail
from guildcoins.services.errors import (
    BadRequest,
    InsufficientBalance,
    InvalidAmount,
    UserNotFound,
    ledger_operation,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _require_positive(amount: object) -> int:
    # bool is an int subclass; True is not one coin.
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")
    if amount > MAX_COINS:
        raise InvalidAmount(f"amount {amount} exceeds the limit of {MAX_COINS}")
    return amount


def parse_coin_amount(raw: str | int) -> int:
    """Parse a coin amount that arrived as a numeric string (``"15"``)."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    text = str(raw).strip()
    # int() also takes "1_000" and non-ASCII digits.
    if not (text.isascii() and text.isdigit()) or len(text) > len(str(MAX_COINS)):
        raise InvalidAmount(f"not a whole number: {raw!r}")
    return int(text)


def _new_discord_user(profile: DiscordProfile, coins: int = 0) -> User:
    return User(
        name=profile.username,
        discord_id=profile.id,
        discord_user_name=profile.username,
        discord_discriminator=profile.discriminator,
        thumbnail=resolve_thumbnail(profile),
        coins=coins,
    )


def _new_github_user(profile: GithubProfile, coins: int = 0) -> User:
    return User(
        name=profile.name,
        email=profile.email,
        github_id=profile.id,
        github_user_name=profile.login,
        thumbnail=profile.avatar_url,
        coins=coins,
    )


def _detach(session: Session, user: User) -> User:
    session.refresh(user)
    session.expunge(user)
    return user


def _increment(
    session: Session, column: InstrumentedAttribute, identifier: str, amount: int
) -> str | None:
    """Add *amount* to the user matching *column == identifier*; return its id."""
    return session.scalar(
        update(User)
        .where(column == identifier)
        .values(coins=User.coins + amount)
        .returning(User.id)
    )


def _credit_in_session(
    session: Session,
    column: InstrumentedAttribute,
    identifier: str,
    amount: int,
    build_user: Callable[[int], User],
) -> User:
    """Increment an existing user or insert a new one holding *amount*.

    The insert runs in a SAVEPOINT: if a concurrent request created the same
    identity first, the unique index rejects ours and we increment theirs.
    """
    user_id = _increment(session, column, identifier, amount)
    if user_id is None:
        user = build_user(amount)
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(user)
                session.flush()
            return user
        except IntegrityError:
            user_id = _increment(session, column, identifier, amount)
            if user_id is None:
                # A different unique column (email, username) collided.
                raise
    return session.get(User, user_id, populate_existing=True)


def _credit(
    engine: Engine,
    column: InstrumentedAttribute,
    identifier: str,
    amount: int,
    build_user: Callable[[int], User],
) -> User:
    with Session(engine, expire_on_commit=False) as session:
        user = _credit_in_session(session, column, identifier, amount, build_user)
        session.add(CoinTransaction(
            kind=TransactionKind.CREDIT.value,
            receiver_id=user.id,
            amount=amount,
        ))
        session.commit()
        logger.info("Credited %d coins to user %s (%s=%s)", amount, user.id, column.key, identifier)
        return _detach(session, user)


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------
@ledger_operation
def create_user(
    engine: Engine,
    *,
    name: str,
    email: str | None = None,
    discord_id: str | None = None,
    discord_user_name: str | None = None,
    discord_discriminator: str | None = None,
    github_id: str | None = None,
    github_user_name: str | None = None,
    thumbnail: str = "",
    coins: int = 0,
) -> User:
    """Insert a new user.  Raises ``DuplicateIdentity`` on a unique clash."""
    if isinstance(coins, bool) or not isinstance(coins, int) or not 0 <= coins <= MAX_COINS:
        raise InvalidAmount(
            f"initial coins must be an integer from 0 to {MAX_COINS}, got {coins!r}"
        )

    with Session(engine, expire_on_commit=False) as session:
        user = User(
            name=name,
            email=email,
            discord_id=discord_id,
            discord_user_name=discord_user_name,
            discord_discriminator=discord_discriminator,
            github_id=github_id,
            github_user_name=github_user_name,
            thumbnail=thumbnail,
            coins=coins,
        )
        session.add(user)
        session.commit()
        logger.info("Created user %s (%s)", user.id, name)
        return _detach(session, user)


# ---------------------------------------------------------------------------
# Credit
# ---------------------------------------------------------------------------
@ledger_operation
def credit_discord_user(engine: Engine, profile: DiscordProfile, amount: int) -> User:
    """Give *amount* coins to a Discord identity, creating it if unknown."""
    _require_positive(amount)
    return _credit(
        engine,
        User.discord_id,
        profile.id,
        amount,
        lambda coins: _new_discord_user(profile, coins),
    )


@ledger_operation
def credit_github_user(engine: Engine, profile: GithubProfile, amount: int | str) -> User:
    """Give coins to a GitHub identity.  *amount* may be a numeric string.

    New users keep the GitHub ``avatar_url`` as their thumbnail verbatim.
    """
    amount = _require_positive(parse_coin_amount(amount))
    return _credit(
        engine,
        User.github_id,
        profile.id,
        amount,
        lambda coins: _new_github_user(profile, coins),
    )


# ---------------------------------------------------------------------------
# Transfer
# ---------------------------------------------------------------------------
def _replay_transfer(
    session: Session,
    idempotency_key: str,
    sender: DiscordProfile,
    receiver: DiscordProfile,
    amount: int,
) -> User | None:
    """Return the receiver of an already-committed transfer with this key."""
    entry = session.scalar(
        select(CoinTransaction).where(CoinTransaction.idempotency_key == idempotency_key)
    )
    if entry is None:
        return None

    sender_user = session.get(User, entry.sender_id) if entry.sender_id else None
    receiver_user = session.get(User, entry.receiver_id)
    if (
        entry.kind != TransactionKind.TRANSFER.value
        or entry.amount != amount
        or sender_user is None
        or sender_user.discord_id != sender.id
        or receiver_user is None
        or receiver_user.discord_id != receiver.id
    ):
        raise BadRequest(
            f"idempotency key {idempotency_key!r} reused with different parameters",
            message_key="errors.idempotency_conflict",
        )

    logger.info("Transfer %r already applied; returning stored result", idempotency_key)
    session.expunge(receiver_user)
    return receiver_user


def _provision_sender(session: Session, sender: DiscordProfile) -> None:
    """First contact from a sender with no row: create it with 0 coins."""
    session.add(_new_discord_user(sender))
    try:
        session.commit()
        logger.info("Provisioned sender %s with 0 coins", sender.id)
    except IntegrityError:
        session.rollback()
        logger.warning("Could not provision sender %s (identity clash)", sender.id)


@ledger_operation
def transfer(
    engine: Engine,
    sender: DiscordProfile,
    receiver: DiscordProfile,
    amount: int,
    *,
    idempotency_key: str | None = None,
) -> User:
    """Move *amount* coins from *sender* to *receiver*; return the receiver.

    1. Reject non-positive amounts and self-transfers before any I/O.
    2. Lock the existing sender/receiver rows in ``discord_id`` order.
    3. Unknown sender → create it with 0 coins, then ``InsufficientBalance``.
    4. Balance below *amount* → ``InsufficientBalance``, nothing written.
    5. Conditional decrement; zero rows → ``InsufficientBalance``.
    6. Credit or create the receiver.
    7. Journal + commit steps 5–6 together.

    With an *idempotency_key*, a retry of a committed transfer returns the
    receiver without moving coins again.
    """
    _require_positive(amount)
    if sender.id == receiver.id:
        raise BadRequest(
            f"sender and receiver are both {sender.id}",
            message_key="errors.self_transfer",
        )

    with Session(engine, expire_on_commit=False) as session:
        if idempotency_key is not None:
            replay = _replay_transfer(session, idempotency_key, sender, receiver, amount)
            if replay is not None:
                return replay

        # Row locks are taken in discord_id order, so A->B and B->A running
        # together queue behind each other instead of deadlocking.
        balances = dict(session.execute(
            select(User.discord_id, User.coins)
            .where(User.discord_id.in_([sender.id, receiver.id]))
            .order_by(User.discord_id)
            .with_for_update()
        ).tuples().all())
        balance = balances.get(sender.id)
        if balance is None:
            _provision_sender(session, sender)
            raise InsufficientBalance(f"sender {sender.id} is new and has no coins")

        if balance < amount:
            raise InsufficientBalance(f"sender {sender.id} has {balance}, needs {amount}")

        # Guarded write: re-checks the balance atomically in the store.
        debited = session.execute(
            update(User)
            .where(User.discord_id == sender.id, User.coins >= amount)
            .values(coins=User.coins - amount)
            .returning(User.id, User.coins)
        ).first()
        if debited is None:
            session.rollback()
            raise InsufficientBalance(f"balance of sender {sender.id} changed concurrently")
        sender_id, remaining = debited

        receiver_user = _credit_in_session(
            session,
            User.discord_id,
            receiver.id,
            amount,
            lambda coins: _new_discord_user(receiver, coins),
        )

        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(CoinTransaction(
                    kind=TransactionKind.TRANSFER.value,
                    sender_id=sender_id,
                    receiver_id=receiver_user.id,
                    amount=amount,
                    idempotency_key=idempotency_key,
                ))
                session.flush()
        except IntegrityError:
            # Only the idempotency key can collide here: a concurrent retry
            # committed first.  Drop our debit/credit and answer with theirs.
            if idempotency_key is None:
                raise
            session.rollback()
            replay = _replay_transfer(session, idempotency_key, sender, receiver, amount)
            if replay is None:
                raise
            return replay

        session.commit()
        logger.info(
            "Transferred %d coins %s → %s (sender now %d)",
            amount, sender.id, receiver.id, remaining,
        )
        return _detach(session, receiver_user)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
@ledger_operation
def get_user(engine: Engine, user_id: str) -> User:
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise UserNotFound(f"no user with id {user_id!r}")
        return user


@ledger_operation
def get_user_by_discord_id(engine: Engine, discord_id: str) -> User | None:
    with get_session(engine) as session:
        return session.scalar(select(User).where(User.discord_id == discord_id))


@ledger_operation
def get_user_by_email(engine: Engine, email: str) -> User | None:
    with get_session(engine) as session:
        return session.scalar(select(User).where(User.email == email))


@ledger_operation
def get_all_users(engine: Engine) -> list[User]:
    with get_session(engine) as session:
        return list(session.scalars(select(User).order_by(User.created_at, User.id)).all())


@ledger_operation
def ensure_discord_user(engine: Engine, profile: DiscordProfile) -> User:
    """Fetch the user for a Discord identity, creating it with 0 coins."""
    with Session(engine, expire_on_commit=False) as session:
        user = session.scalar(select(User).where(User.discord_id == profile.id))
        if user is not None:
            return user
        user = _new_discord_user(profile)
        session.add(user)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            user = session.scalar(select(User).where(User.discord_id == profile.id))
            if user is None:
                raise
            return user
        logger.info("Provisioned user %s for Discord id %s", user.id, profile.id)
        return _detach(session, user)
