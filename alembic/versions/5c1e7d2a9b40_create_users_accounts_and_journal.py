"""Create users, accounts and coin_transactions

Revision ID: 5c1e7d2a9b40
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "5c1e7d2a9b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("discord_id", sa.String(32), nullable=True, unique=True),
        sa.Column("discord_user_name", sa.String(100), nullable=True, unique=True),
        sa.Column("discord_discriminator", sa.String(8), nullable=True),
        sa.Column("github_id", sa.String(32), nullable=True, unique=True),
        sa.Column("github_user_name", sa.String(39), nullable=True),
        sa.Column("thumbnail", sa.String(500), nullable=False, server_default=""),
        sa.Column("coins", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
    )
    op.create_index("ix_users_coins_desc", "users", ["coins"])

    op.create_table(
        "accounts",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(32),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("provider_account_id", sa.String(100), nullable=False),
        sa.UniqueConstraint(
            "provider", "provider_account_id", name="uq_accounts_provider_account"
        ),
    )

    op.create_table(
        "coin_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column(
            "sender_id",
            sa.String(32),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "receiver_id",
            sa.String(32),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("idempotency_key", sa.String(100), nullable=True, unique=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("amount > 0", name="ck_coin_transactions_amount_positive"),
    )
    op.create_index("ix_coin_transactions_receiver", "coin_transactions", ["receiver_id"])
    op.create_index("ix_coin_transactions_sender", "coin_transactions", ["sender_id"])


def downgrade() -> None:
    op.drop_index("ix_coin_transactions_sender", table_name="coin_transactions")
    op.drop_index("ix_coin_transactions_receiver", table_name="coin_transactions")
    op.drop_table("coin_transactions")
    op.drop_table("accounts")
    op.drop_index("ix_users_coins_desc", table_name="users")
    op.drop_table("users")
