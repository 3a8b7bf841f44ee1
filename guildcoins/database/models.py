"""
guildcoins.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- users             — Community members and their coin balance
- accounts          — Identity-provider links (provider, provider_account_id)
- coin_transactions — Append-only journal of credits and transfers
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    BigInteger,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all guildcoins ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TransactionKind(enum.StrEnum):
    """How coins entered or moved through the ledger."""
    CREDIT = "CREDIT"
    TRANSFER = "TRANSFER"


# ---------------------------------------------------------------------------
# Users — one row per person, whichever identities they linked
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, default=None)

    # Discord identity
    discord_id: Mapped[str | None] = mapped_column(String(32), unique=True, default=None)
    discord_user_name: Mapped[str | None] = mapped_column(String(100), unique=True, default=None)
    discord_discriminator: Mapped[str | None] = mapped_column(String(8), default=None)

    # GitHub identity
    github_id: Mapped[str | None] = mapped_column(String(32), unique=True, default=None)
    github_user_name: Mapped[str | None] = mapped_column(String(39), default=None)

    thumbnail: Mapped[str] = mapped_column(String(500), default="", server_default="")
    coins: Mapped[int] = mapped_column(BigInteger, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    accounts: Mapped[list[Account]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
        Index("ix_users_coins_desc", "coins"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} coins={self.coins}>"


# ---------------------------------------------------------------------------
# Accounts — owned by the identity-provider integration
# ---------------------------------------------------------------------------
class Account(Base):
    """Binds an external (provider, providerAccountId) pair to a User.

    Used only to short-circuit identity resolution during sign-in; ledger
    operations never touch it.
    """
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # oauth, oidc, email
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    provider_account_id: Mapped[str] = mapped_column(String(100), nullable=False)

    user: Mapped[User] = relationship(back_populates="accounts")

    __table_args__ = (
        UniqueConstraint(
            "provider", "provider_account_id", name="uq_accounts_provider_account"
        ),
    )

    def __repr__(self) -> str:
        return f"<Account {self.provider}:{self.provider_account_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# CoinTransaction — append-only journal
# ---------------------------------------------------------------------------
class CoinTransaction(Base):
    """One row per committed credit or transfer.

    ``idempotency_key`` is unique when present: a retried transfer carrying
    the same key finds the existing row and is not applied twice.
    """
    __tablename__ = "coin_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    sender_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="SET NULL"), default=None
    )
    receiver_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(100), unique=True, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_coin_transactions_amount_positive"),
        Index("ix_coin_transactions_receiver", "receiver_id"),
        Index("ix_coin_transactions_sender", "sender_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<CoinTransaction id={self.id} kind={self.kind} "
            f"{self.sender_id}->{self.receiver_id} amount={self.amount}>"
        )
