"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2025-11-25
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum("AGENT", "ADMIN", name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_approved", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("commission_pct", sa.Numeric(5, 2), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_phone", "users", ["phone"], unique=True)
    op.create_index("ix_users_role_active", "users", ["role", "is_active"], unique=False)

    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("total_balance", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("reserved_winning", sa.Numeric(14, 2), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("reserved_winning >= 0", name="ck_wallets_reserved_non_negative"),
    )
    op.create_index("ix_wallets_user_id", "wallets", ["user_id"], unique=False)

    op.create_table(
        "wallet_tx",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("wallet_id", sa.Integer, sa.ForeignKey("wallets.id"), nullable=False),
        sa.Column(
            "tx_type",
            sa.Enum(
                "BID_CREDIT",
                "BID_DEBIT",
                "COMMISSION_CREDIT",
                "COMMISSION_SETTLEMENT",
                "WIN_CREDIT",
                "WIN_SETTLEMENT_ADMIN_TO_AGENT",
                "WIN_SETTLEMENT_AGENT_TO_USER",
                "WITHDRAW",
                name="wallettxtype",
            ),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(14, 2), nullable=False),
        sa.Column("deposit_status", sa.Enum("PENDING", "APPROVED", "DECLINED", name="depositstatus"), nullable=True),
        sa.Column("reference", sa.String(64), nullable=True),
        sa.Column("meta", sa.JSON, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_wallet_tx_wallet_id_type", "wallet_tx", ["wallet_id", "tx_type"], unique=False)
    op.create_index("ix_wallet_tx_type_deposit_status", "wallet_tx", ["tx_type", "deposit_status"], unique=False)
    op.create_index("ix_wallet_tx_reference", "wallet_tx", ["reference"], unique=False)

    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("bid_prize_ld", sa.Numeric(14, 2), nullable=False, server_default="1"),
        sa.Column("bid_prize_jp", sa.Numeric(14, 2), nullable=False, server_default="5"),
        sa.Column("winning_prize_ld", sa.Numeric(14, 2), nullable=False, server_default="3300"),
        sa.Column("winning_prize_jp", sa.Numeric(14, 2), nullable=False, server_default="10000"),
        sa.Column("min_profit_pct", sa.Numeric(7, 4), nullable=False, server_default="0.15"),
        sa.Column("agent_negative_balance_limit", sa.Numeric(14, 2), nullable=False, server_default="200"),
        sa.Column("default_commission_pct", sa.Numeric(5, 2), nullable=False, server_default="10"),
        sa.Column("ld_bid_limit_per_number", sa.Integer, nullable=False, server_default="80"),
        *_timestamps(),
    )

    op.create_table(
        "slots",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("unique_slot_id", sa.String(16), nullable=False, unique=True),
        sa.Column("type", sa.Enum("LD", "JP", name="slottype"), nullable=False),
        sa.Column("slot_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("window_close_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Enum("OPEN", "CLOSED", "COMPLETED", name="slotstatus"), nullable=False),
        sa.Column("settings_json", sa.JSON, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_slots_status_window", "slots", ["status", "window_close_at"], unique=False)
    op.create_index("ix_slots_type_time", "slots", ["type", "slot_time"], unique=False)

    op.create_table(
        "bids",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("slot_id", sa.Integer, sa.ForeignKey("slots.id"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("unique_bid_id", sa.String(128), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(32), nullable=False),
        sa.Column("number", sa.Integer, nullable=True),
        sa.Column("count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("jp_numbers", sa.JSON, nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("status", sa.Enum("ACTIVE", "CANCELLED", name="bidstatus"), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_bids_unique_bid_id", "bids", ["unique_bid_id"], unique=False)
    op.create_index("ix_bids_slot_number", "bids", ["slot_id", "number"], unique=False)
    op.create_index("ix_bids_slot_status", "bids", ["slot_id", "status"], unique=False)

    op.create_table(
        "draw_results",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("slot_id", sa.Integer, sa.ForeignKey("slots.id"), nullable=False, unique=True),
        sa.Column("winner", sa.String(64), nullable=False),
        sa.Column("dummy_units", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_units", sa.Integer, nullable=False, server_default="0"),
        sa.Column("per_unit_payout", sa.Numeric(14, 2), nullable=False),
        sa.Column("payout_total", sa.Numeric(14, 2), nullable=False),
        sa.Column("meta", sa.JSON, nullable=False),
        *_timestamps(),
    )


def downgrade():
    op.drop_table("draw_results")
    op.drop_index("ix_bids_slot_status", table_name="bids")
    op.drop_index("ix_bids_slot_number", table_name="bids")
    op.drop_index("ix_bids_unique_bid_id", table_name="bids")
    op.drop_table("bids")
    op.drop_index("ix_slots_type_time", table_name="slots")
    op.drop_index("ix_slots_status_window", table_name="slots")
    op.drop_table("slots")
    op.drop_table("app_settings")
    op.drop_index("ix_wallet_tx_reference", table_name="wallet_tx")
    op.drop_index("ix_wallet_tx_type_deposit_status", table_name="wallet_tx")
    op.drop_index("ix_wallet_tx_wallet_id_type", table_name="wallet_tx")
    op.drop_table("wallet_tx")
    op.drop_index("ix_wallets_user_id", table_name="wallets")
    op.drop_table("wallets")
    op.drop_index("ix_users_role_active", table_name="users")
    op.drop_index("ix_users_phone", table_name="users")
    op.drop_table("users")
    for enum_name in ("bidstatus", "slotstatus", "slottype", "depositstatus", "wallettxtype", "userrole"):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
