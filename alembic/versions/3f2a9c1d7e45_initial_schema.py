"""initial_schema

Revision ID: 3f2a9c1d7e45
Revises:
Create Date: 2026-10-19 09:12:40.118302

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7e45"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EVENT_TABLES = (
    "mint_events",
    "burn_events",
    "transfer_events",
    "blacklisted_events",
    "unblacklisted_events",
)


def _event_columns() -> list[sa.Column]:
    """Columns shared by every mirrored event table."""
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tx_hash", sa.String(length=66), nullable=False),
        sa.Column("log_index", sa.Integer(), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("block_timestamp", sa.DateTime(), nullable=False),
    ]


def _address(name: str) -> sa.Column:
    return sa.Column(name, sa.LargeBinary(length=20), nullable=False)


def _amount(name: str = "amount") -> sa.Column:
    return sa.Column(name, sa.Numeric(precision=78, scale=0), nullable=False)


def _indexed_at() -> sa.Column:
    return sa.Column("indexed_at", sa.DateTime(), nullable=False)


def upgrade() -> None:
    """Create event, snapshot and alert tables."""
    op.create_table(
        "mint_events",
        *_event_columns(),
        _address("to_address"),
        _amount(),
        _address("minter"),
        _indexed_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tx_hash", "log_index", name="uq_mint_events_tx_log"),
    )
    op.create_index("ix_mint_events_to_address", "mint_events", ["to_address"])

    op.create_table(
        "burn_events",
        *_event_columns(),
        _address("from_address"),
        _amount(),
        _address("burner"),
        _indexed_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tx_hash", "log_index", name="uq_burn_events_tx_log"),
    )

    op.create_table(
        "transfer_events",
        *_event_columns(),
        _address("from_address"),
        _address("to_address"),
        _amount(),
        _indexed_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tx_hash", "log_index", name="uq_transfer_events_tx_log"),
    )
    op.create_index("ix_transfer_events_from_address", "transfer_events", ["from_address"])
    op.create_index("ix_transfer_events_to_address", "transfer_events", ["to_address"])

    for table in ("blacklisted_events", "unblacklisted_events"):
        op.create_table(
            table,
            *_event_columns(),
            _address("account"),
            _address("blacklister"),
            _indexed_at(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tx_hash", "log_index", name=f"uq_{table}_tx_log"),
        )
        op.create_index(f"ix_{table}_account", table, ["account"])

    for table in EVENT_TABLES:
        op.create_index(f"ix_{table}_tx_hash", table, ["tx_hash"])
        op.create_index(f"ix_{table}_block_number", table, ["block_number"])
        op.create_index(f"ix_{table}_block_timestamp", table, ["block_timestamp"])

    op.create_table(
        "token_snapshots",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("snapshot_time", sa.DateTime(), nullable=False),
        _amount("total_supply"),
        _amount("total_minted"),
        _amount("total_burned"),
        sa.Column("unique_holders", sa.Integer(), nullable=False),
        sa.Column("total_transactions", sa.Integer(), nullable=False),
        sa.Column("latest_block_number", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_token_snapshots_snapshot_time", "token_snapshots", ["snapshot_time"])

    op.create_table(
        "system_alerts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "severity",
            sa.Enum("INFO", "WARNING", "ERROR", "CRITICAL", name="alertseverity"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("source", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("resolved", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_system_alerts_severity", "system_alerts", ["severity"])
    op.create_index("ix_system_alerts_created_at", "system_alerts", ["created_at"])
    op.create_index("ix_system_alerts_resolved", "system_alerts", ["resolved"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_table("system_alerts")
    sa.Enum(name="alertseverity").drop(op.get_bind(), checkfirst=True)
    op.drop_table("token_snapshots")
    for table in reversed(EVENT_TABLES):
        op.drop_table(table)
