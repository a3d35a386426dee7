"""create_variant_tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:12:41.208113

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create albums, images, image_variants and settings tables."""
    op.create_table(
        "albums",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("is_nsfw", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("cover_image_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_albums_is_nsfw", "albums", ["is_nsfw"])

    op.create_table(
        "images",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("album_id", sa.Integer(), sa.ForeignKey("albums.id"), nullable=False),
        sa.Column("original_path", sa.String(length=1024), nullable=False),
        sa.Column("file_hash", sa.String(length=64), nullable=False),
        sa.Column("width", sa.Integer(), nullable=False),
        sa.Column("height", sa.Integer(), nullable=False),
        sa.Column("mime", sa.String(length=100), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_images_album_id", "images", ["album_id"])
    op.create_index("ix_images_file_hash", "images", ["file_hash"])

    # Unique (image_id, variant, format) backs the ON CONFLICT upsert
    op.create_table(
        "image_variants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("image_id", sa.Integer(), sa.ForeignKey("images.id"), nullable=False),
        sa.Column("variant", sa.String(length=50), nullable=False),
        sa.Column("format", sa.String(length=10), nullable=False),
        sa.Column("path", sa.String(length=1024), nullable=False),
        sa.Column("width", sa.Integer(), nullable=False),
        sa.Column("height", sa.Integer(), nullable=False),
        sa.UniqueConstraint(
            "image_id", "variant", "format", name="uq_image_variants_image_variant_format"
        ),
    )
    op.create_index("ix_image_variants_image_id", "image_variants", ["image_id"])

    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=255), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    """Drop variant pipeline tables."""
    op.drop_table("settings")
    op.drop_index("ix_image_variants_image_id", table_name="image_variants")
    op.drop_table("image_variants")
    op.drop_index("ix_images_file_hash", table_name="images")
    op.drop_index("ix_images_album_id", table_name="images")
    op.drop_table("images")
    op.drop_index("ix_albums_is_nsfw", table_name="albums")
    op.drop_table("albums")
