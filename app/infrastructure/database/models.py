"""SQLAlchemy database models."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSON, UUID
from sqlalchemy.orm import DeclarativeBase, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class DramaModel(Base):
    __tablename__ = "dramas"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    poster = Column(String(512), nullable=False, default="")
    category = Column(String(50), nullable=False, index=True)
    tags = Column(ARRAY(String), nullable=False, default=list)
    rating = Column(Float, nullable=False, default=0.0, index=True)
    view_count = Column(Integer, nullable=False, default=0, index=True)
    episodes = Column(Integer, nullable=False, default=1)
    duration = Column(String(50), nullable=False, default="")
    status = Column(String(20), nullable=False, default="updating", index=True)
    cast = Column("cast", ARRAY(String), nullable=False, default=list)
    video_urls = Column(ARRAY(String), nullable=False, default=list)
    release_date = Column(DateTime, nullable=False, index=True)
    is_hot = Column(Boolean, nullable=False, default=False, index=True)
    is_new = Column(Boolean, nullable=False, default=False, index=True)
    comment_count = Column(Integer, nullable=False, default=0)
    favorite_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("ix_dramas_hot_views", "is_hot", "view_count"),
        Index("ix_dramas_category_rating", "category", "rating"),
    )


class CategoryModel(Base):
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True, index=True)
    color = Column(String(7), nullable=False, default="#3B82F6")
    description = Column(String(200), nullable=True)
    icon = Column(String(100), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(20), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    avatar = Column(String(512), nullable=True)
    role = Column(String(20), nullable=False, default="user", index=True)
    status = Column(String(20), nullable=False, default="active", index=True)
    profile = Column(JSON, nullable=False, default=dict)
    preferences = Column(JSON, nullable=False, default=dict)
    stats = Column(JSON, nullable=False, default=dict)
    last_login_at = Column(DateTime, nullable=True)
    email_verified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    sessions = relationship(
        "UserSessionModel", back_populates="user", lazy="noload", cascade="all, delete-orphan"
    )
    viewing_preferences = relationship(
        "UserPreferenceModel", back_populates="user", uselist=False, lazy="noload",
        cascade="all, delete-orphan",
    )
    search_history = relationship(
        "SearchHistoryModel", back_populates="user", lazy="noload", cascade="all, delete-orphan"
    )


class UserSessionModel(Base):
    __tablename__ = "user_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id = Column(String(64), nullable=False, unique=True)
    refresh_token = Column(Text, nullable=False, unique=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    user = relationship("UserModel", back_populates="sessions")

    __table_args__ = (Index("ix_user_sessions_user_active", "user_id", "is_active"),)


class UserPreferenceModel(Base):
    __tablename__ = "user_preferences"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    categories = Column(JSON, nullable=False, default=dict)  # {"Romance": 0.8}
    tags = Column(JSON, nullable=False, default=dict)
    actors = Column(JSON, nullable=False, default=dict)
    rating_range = Column(JSON, nullable=False, default=dict)
    viewing_time = Column(JSON, nullable=False, default=dict)
    recent_dramas = Column(ARRAY(String), nullable=False, default=list)
    last_updated = Column(DateTime, default=_utcnow, nullable=False)

    user = relationship("UserModel", back_populates="viewing_preferences")


class SearchHistoryModel(Base):
    __tablename__ = "search_history"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    query = Column(String(200), nullable=False, index=True)
    filters = Column(JSON, nullable=False, default=dict)
    result_count = Column(Integer, nullable=False, default=0)
    clicked_items = Column(ARRAY(String), nullable=False, default=list)
    timestamp = Column(DateTime, default=_utcnow, nullable=False, index=True)

    user = relationship("UserModel", back_populates="search_history")
