from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.cms.models import Base


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (
        Index("idx_team_members_display_order", "display_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)  # job title, e.g. "Registered Nurse"
    bio: Mapped[str] = mapped_column(Text, nullable=False)
    photo: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    specializations: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Presentation order (ascending); not unique
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    social_links: Mapped[list["SocialLink"]] = relationship(
        "SocialLink",
        back_populates="team_member",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SocialLink.id",
    )
    contact_info: Mapped["ContactInfo | None"] = relationship(
        "ContactInfo",
        back_populates="team_member",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )


class SocialLink(Base):
    __tablename__ = "social_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    team_member_id: Mapped[int] = mapped_column(ForeignKey("team_members.id", ondelete="CASCADE"), nullable=False, index=True)
    platform: Mapped[str] = mapped_column(String(64), nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)

    team_member: Mapped[TeamMember] = relationship("TeamMember", back_populates="social_links")


class ContactInfo(Base):
    __tablename__ = "contact_infos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    team_member_id: Mapped[int] = mapped_column(ForeignKey("team_members.id", ondelete="CASCADE"), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    team_member: Mapped[TeamMember] = relationship("TeamMember", back_populates="contact_info")
