from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.cms.models import Base

if TYPE_CHECKING:
    from app.cms.models import User


class Media(Base):
    __tablename__ = "media"
    __table_args__ = (
        Index("idx_media_type", "type"),
        Index("idx_media_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    type: Mapped[str] = mapped_column(String(128), nullable=False)  # MIME type, e.g. "image/png"
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # bytes

    # Only set when the bytes were uploaded through the API
    storage_key: Mapped[str | None] = mapped_column(String(512), nullable=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped["User"] = relationship("User", lazy="selectin")
