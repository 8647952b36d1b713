"""Create memories and paid_tiles tables.

Revision ID: 0001_memories_paid_tiles
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_memories_paid_tiles"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "memories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wall_slug", sa.String(length=16), nullable=False, server_default="m"),
        sa.Column("tile_index", sa.BigInteger(), nullable=False),
        sa.Column("title", sa.String(length=500)),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("author_name", sa.String(length=255)),
        sa.Column("accent_color", sa.String(length=20), nullable=False, server_default="none"),
        sa.Column("image_url", sa.Text()),
        sa.Column("image_data", sa.Text()),
        sa.Column("paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("wall_slug", "tile_index", name="uq_memories_wall_tile"),
        sa.CheckConstraint("tile_index >= 0", name="ck_memories_tile_index_non_negative"),
    )
    op.create_index(
        "ix_memories_wall_published_created",
        "memories",
        ["wall_slug", "published", "created_at"],
    )

    op.create_table(
        "paid_tiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wall_slug", sa.String(length=16), nullable=False),
        sa.Column("tile_index", sa.BigInteger(), nullable=False),
        sa.Column("stripe_session_id", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("wall_slug", "tile_index", name="uq_paid_tiles_wall_tile"),
    )


def downgrade() -> None:
    op.drop_table("paid_tiles")
    op.drop_index("ix_memories_wall_published_created", table_name="memories")
    op.drop_table("memories")
