"""
ORM entities for the photo gallery tables the tagging pipeline touches.
"""

from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base
from .models import TagType


class User(Base):
    """Gallery account owning photos and AI settings."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    photos = relationship("Photo", back_populates="user", cascade="all, delete-orphan")
    ai_setting = relationship(
        "UserAiSetting", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"


class Photo(Base):
    """Uploaded photo with its tag associations."""

    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_path = Column(String(255), nullable=False)
    thumbnail_path = Column(String(255), nullable=False, default="")
    width = Column(Integer, nullable=False, default=0)
    height = Column(Integer, nullable=False, default=0)
    taken_at = Column(DateTime, nullable=True)
    location = Column(String(100), nullable=True)
    description = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="photos")
    photo_tags = relationship(
        "PhotoTag", back_populates="photo", cascade="all, delete-orphan"
    )

    @property
    def tag_names(self):
        """Names of all associated tags, in association order."""
        return [pt.tag.name for pt in self.photo_tags if pt.tag is not None]

    def __repr__(self):
        return f"<Photo(id={self.id}, file_path={self.file_path})>"


class Tag(Base):
    """
    Tag shared across photos.
    A (name, type) pair is unique, so an Ai tag and a Manual tag may share a name.
    """

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    type = Column(Integer, nullable=False, default=int(TagType.MANUAL))

    photo_tags = relationship("PhotoTag", back_populates="tag", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("name", "type", name="uq_tags_name_type"),
    )

    @property
    def tag_type(self) -> TagType:
        return TagType(self.type)

    def __repr__(self):
        return f"<Tag(id={self.id}, name={self.name}, type={self.tag_type.name})>"


class PhotoTag(Base):
    """Association between a photo and a tag."""

    __tablename__ = "photo_tags"

    photo_id = Column(
        Integer, ForeignKey("photos.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id = Column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True
    )

    photo = relationship("Photo", back_populates="photo_tags")
    tag = relationship("Tag", back_populates="photo_tags")

    def __repr__(self):
        return f"<PhotoTag(photo_id={self.photo_id}, tag_id={self.tag_id})>"


class UserAiSetting(Base):
    """Vision model settings a user saved to opt into AI tagging."""

    __tablename__ = "user_ai_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    provider = Column(String(50), nullable=False, default="OpenAI")
    model = Column(String(200), nullable=False, default="gpt-4o-mini")
    endpoint = Column(String(500), nullable=True)
    api_key = Column(String(512), nullable=False, default="")
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    user = relationship("User", back_populates="ai_setting")

    def __repr__(self):
        return f"<UserAiSetting(user_id={self.user_id}, model={self.model})>"


class AiTagSuggestion(Base):
    """
    Lower-confidence tag proposed for user review.
    Suggestions are global per user: the first photo that surfaces a name claims it.
    The row outlives its photo (photo_id is cleared on delete).
    """

    __tablename__ = "ai_tag_suggestions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    photo_id = Column(
        Integer, ForeignKey("photos.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_adopted = Column(Boolean, default=False, nullable=False)
    adopted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_ai_tag_suggestions_user_name"),
    )

    def __repr__(self):
        return f"<AiTagSuggestion(user_id={self.user_id}, name={self.name}, photo_id={self.photo_id})>"
