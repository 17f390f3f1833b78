from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.cms.models import Base

if TYPE_CHECKING:
    from app.cms.models import User
    from app.cms.modules.taxonomy.models import Category, Tag


class Post(Base):
    __tablename__ = "posts"
    __table_args__ = (
        Index("idx_posts_status", "status"),
        Index("idx_posts_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    featured_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="DRAFT")  # DRAFT, PENDING_REVIEW, PUBLISHED, SCHEDULED
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    # SEO
    meta_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    author_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    author: Mapped["User | None"] = relationship("User", lazy="selectin")
    category_links: Mapped[list["PostCategory"]] = relationship(
        "PostCategory",
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    tag_links: Mapped[list["PostTag"]] = relationship(
        "PostTag",
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PostCategory(Base):
    __tablename__ = "post_categories"

    post_id: Mapped[int] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True)

    post: Mapped[Post] = relationship("Post", back_populates="category_links")
    category: Mapped["Category"] = relationship("Category", lazy="selectin")


class PostTag(Base):
    __tablename__ = "post_tags"

    post_id: Mapped[int] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    tag_id: Mapped[int] = mapped_column(ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)

    post: Mapped[Post] = relationship("Post", back_populates="tag_links")
    tag: Mapped["Tag"] = relationship("Tag", lazy="selectin")
