"""add posts, taxonomy, team and media tables

Revision ID: 7c4e2a8b9d10
Revises: 3a1f0c9d2b7e
Create Date: 2026-09-28 10:31:07.884215

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '7c4e2a8b9d10'
down_revision: Union[str, Sequence[str], None] = '3a1f0c9d2b7e'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create content tables (idempotent)."""
    bind = op.get_bind()
    existing_tables = set(inspect(bind).get_table_names())

    for table in ("categories", "tags"):
        if table not in existing_tables:
            op.create_table(
                table,
                sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
                sa.Column("name", sa.String(255), nullable=False),
                sa.Column("slug", sa.String(255), nullable=False, unique=True),
                sa.Column("description", sa.Text(), nullable=True),
                sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
                sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False),
            )

    if "posts" not in existing_tables:
        op.create_table(
            "posts",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("slug", sa.String(255), nullable=False, unique=True),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("excerpt", sa.Text(), nullable=True),
            sa.Column("featured_image", sa.String(1024), nullable=True),
            sa.Column("status", sa.String(32), nullable=False, server_default="DRAFT"),
            sa.Column("published_at", sa.DateTime(timezone=False), nullable=True),
            sa.Column("meta_title", sa.String(255), nullable=True),
            sa.Column("meta_description", sa.Text(), nullable=True),
            sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False),
        )
        op.create_index("idx_posts_status", "posts", ["status"])
        op.create_index("idx_posts_created_at", "posts", ["created_at"])

    if "post_categories" not in existing_tables:
        op.create_table(
            "post_categories",
            sa.Column("post_id", sa.Integer(), sa.ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
        )

    if "post_tags" not in existing_tables:
        op.create_table(
            "post_tags",
            sa.Column("post_id", sa.Integer(), sa.ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("tag_id", sa.Integer(), sa.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
        )

    if "team_members" not in existing_tables:
        op.create_table(
            "team_members",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("bio", sa.Text(), nullable=False),
            sa.Column("photo", sa.String(1024), nullable=True),
            sa.Column("specializations", sa.Text(), nullable=True),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False),
        )
        op.create_index("idx_team_members_display_order", "team_members", ["display_order"])

    if "social_links" not in existing_tables:
        op.create_table(
            "social_links",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("team_member_id", sa.Integer(), sa.ForeignKey("team_members.id", ondelete="CASCADE"), nullable=False),
            sa.Column("platform", sa.String(64), nullable=False),
            sa.Column("url", sa.String(1024), nullable=False),
        )
        op.create_index("ix_social_links_team_member_id", "social_links", ["team_member_id"])

    if "contact_infos" not in existing_tables:
        op.create_table(
            "contact_infos",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("team_member_id", sa.Integer(), sa.ForeignKey("team_members.id", ondelete="CASCADE"), nullable=False, unique=True),
            sa.Column("email", sa.String(320), nullable=True),
            sa.Column("phone", sa.String(64), nullable=True),
        )

    if "media" not in existing_tables:
        op.create_table(
            "media",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("url", sa.String(1024), nullable=False),
            sa.Column("type", sa.String(128), nullable=False),
            sa.Column("size", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("storage_key", sa.String(512), nullable=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        )
        op.create_index("idx_media_type", "media", ["type"])
        op.create_index("idx_media_user_id", "media", ["user_id"])


def downgrade() -> None:
    """Drop content tables."""
    op.drop_index("idx_media_user_id", table_name="media")
    op.drop_index("idx_media_type", table_name="media")
    op.drop_table("media")
    op.drop_table("contact_infos")
    op.drop_index("ix_social_links_team_member_id", table_name="social_links")
    op.drop_table("social_links")
    op.drop_index("idx_team_members_display_order", table_name="team_members")
    op.drop_table("team_members")
    op.drop_table("post_tags")
    op.drop_table("post_categories")
    op.drop_index("idx_posts_created_at", table_name="posts")
    op.drop_index("idx_posts_status", table_name="posts")
    op.drop_table("posts")
    op.drop_table("tags")
    op.drop_table("categories")
