"""Add combatant record and loot table tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # Enum columns store member names
    combatant_kind_enum = sa.Enum("PLAYER", "MONSTER", name="combatant_kind")
    combatant_status_enum = sa.Enum(
        "OK", "UNCONSCIOUS", "DEAD", "CONFUSED", "ASHES", "LOST", name="combatant_status"
    )
    combatant_kind_enum.create(op.get_bind(), checkfirst=True)
    combatant_status_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "combatant_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("combatant_id", sa.String(64), nullable=False),
        sa.Column("kind", combatant_kind_enum, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("current_hp", sa.Integer(), nullable=False),
        sa.Column("max_hp", sa.Integer(), nullable=False),
        sa.Column("is_alive", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("status", combatant_status_enum, nullable=False, server_default="OK"),
        sa.Column("conditions", sa.JSON(), nullable=False),
        sa.Column("is_phased_out", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("phase_out_reason", sa.String(64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_combatant_records_combatant_id", "combatant_records", ["combatant_id"], unique=True)

    op.create_table(
        "loot_table_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False, server_default="equipment"),
        sa.Column("min_level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("max_level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("value", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_loot_table_entries_levels", "loot_table_entries", ["min_level", "max_level"]
    )


def downgrade() -> None:
    op.drop_index("ix_loot_table_entries_levels", table_name="loot_table_entries")
    op.drop_table("loot_table_entries")
    op.drop_index("ix_combatant_records_combatant_id", table_name="combatant_records")
    op.drop_table("combatant_records")

    sa.Enum(name="combatant_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="combatant_kind").drop(op.get_bind(), checkfirst=True)
