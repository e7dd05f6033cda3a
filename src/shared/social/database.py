"""Database models for social feed feature."""

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

# Import Base from auth database to use the same declarative base
from src.shared.auth.database import Base, User


def _new_id() -> str:
    return str(uuid.uuid4())


class Post(Base):
    """Image post. Immutable after creation."""
    __tablename__ = "posts"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String, nullable=False)
    caption = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    author = relationship(User, lazy="joined")
    likes = relationship("Like", back_populates="post", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_posts_created_id', 'created_at', 'id'),
        Index('idx_posts_user_created', 'user_id', 'created_at'),
    )


class Like(Base):
    """Like model for posts."""
    __tablename__ = "likes"

    id = Column(String, primary_key=True, default=_new_id)
    post_id = Column(String, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    post = relationship("Post", back_populates="likes")

    __table_args__ = (
        UniqueConstraint('post_id', 'user_id', name='uq_like_post_user'),
    )


class Comment(Base):
    """Comment model for posts."""
    __tablename__ = "comments"

    id = Column(String, primary_key=True, default=_new_id)
    post_id = Column(String, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    post = relationship("Post", back_populates="comments")
    author = relationship(User, lazy="joined")

    __table_args__ = (
        Index('idx_comments_post_created', 'post_id', 'created_at'),
    )


class Follow(Base):
    """Follow model for user relationships."""
    __tablename__ = "follows"

    id = Column(String, primary_key=True, default=_new_id)
    follower_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('follower_id', 'following_id', name='uq_follow_follower_following'),
        CheckConstraint('follower_id <> following_id', name='ck_follow_not_self'),
    )
