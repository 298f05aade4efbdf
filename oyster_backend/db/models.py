from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Integer,
    PrimaryKeyConstraint,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Order matters: every vector in the engine follows it.
ATTRIBUTES: tuple[str, ...] = (
    "size",
    "body",
    "sweet_brininess",
    "flavorfulness",
    "creaminess",
)


class ReviewRating(str, Enum):
    LOVE_IT = "LOVE_IT"
    LIKE_IT = "LIKE_IT"
    MEH = "MEH"
    WHATEVER = "WHATEVER"


FAVORABLE_RATINGS: tuple[ReviewRating, ...] = (ReviewRating.LOVE_IT, ReviewRating.LIKE_IT)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class Item(Base):
    """An oyster: curated seed traits plus community aggregates."""

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    origin: Mapped[str | None] = mapped_column(String(200))
    species: Mapped[str | None] = mapped_column(String(200))

    # Seed attributes (1-10)
    size: Mapped[float] = mapped_column(Float, nullable=False)
    body: Mapped[float] = mapped_column(Float, nullable=False)
    sweet_brininess: Mapped[float] = mapped_column(Float, nullable=False)
    flavorfulness: Mapped[float] = mapped_column(Float, nullable=False)
    creaminess: Mapped[float] = mapped_column(Float, nullable=False)

    # Aggregated attributes, null until the first recompute
    avg_size: Mapped[float | None] = mapped_column(Float)
    avg_body: Mapped[float | None] = mapped_column(Float)
    avg_sweet_brininess: Mapped[float | None] = mapped_column(Float)
    avg_flavorfulness: Mapped[float | None] = mapped_column(Float)
    avg_creaminess: Mapped[float | None] = mapped_column(Float)

    avg_rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    overall_score: Mapped[float] = mapped_column(Float, default=5.0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    reviews: Mapped[list["Review"]] = relationship(
        back_populates="item", cascade="all, delete-orphan",
    )

    def seed(self, attribute: str) -> float:
        return getattr(self, attribute)

    def aggregate(self, attribute: str) -> float | None:
        return getattr(self, f"avg_{attribute}")

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, name={self.name!r})>"


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    credibility_score: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    total_agrees: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_disagrees: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Baseline flavor profile: all five set, or none
    baseline_size: Mapped[float | None] = mapped_column(Float)
    baseline_body: Mapped[float | None] = mapped_column(Float)
    baseline_sweet_brininess: Mapped[float | None] = mapped_column(Float)
    baseline_flavorfulness: Mapped[float | None] = mapped_column(Float)
    baseline_creaminess: Mapped[float | None] = mapped_column(Float)

    reviews: Mapped[list["Review"]] = relationship(back_populates="user")
    favorites: Mapped[list["Favorite"]] = relationship(
        back_populates="user", cascade="all, delete-orphan",
    )

    def baseline(self, attribute: str) -> float | None:
        return getattr(self, f"baseline_{attribute}")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name!r})>"


class Favorite(Base):
    __tablename__ = "favorites"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    item_id: Mapped[str] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    user: Mapped[User] = relationship(back_populates="favorites")

    __table_args__ = (PrimaryKeyConstraint("user_id", "item_id"),)


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    item_id: Mapped[str] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), index=True,
    )
    rating: Mapped[ReviewRating] = mapped_column(SAEnum(ReviewRating), nullable=False)

    # Optional attribute subscores (1-10)
    size: Mapped[float | None] = mapped_column(Float)
    body: Mapped[float | None] = mapped_column(Float)
    sweet_brininess: Mapped[float | None] = mapped_column(Float)
    flavorfulness: Mapped[float | None] = mapped_column(Float)
    creaminess: Mapped[float | None] = mapped_column(Float)
    notes: Mapped[str | None] = mapped_column(Text)

    agree_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    disagree_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    net_vote_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    weighted_score: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(),
    )

    item: Mapped[Item] = relationship(back_populates="reviews")
    user: Mapped[User | None] = relationship(back_populates="reviews")
    votes: Mapped[list["ReviewVote"]] = relationship(
        back_populates="review", cascade="all, delete-orphan",
    )

    __table_args__ = (UniqueConstraint("user_id", "item_id", name="uq_reviews_user_item"),)

    def attribute(self, attribute: str) -> float | None:
        return getattr(self, attribute)

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, item_id={self.item_id}, rating={self.rating.value})>"


class ReviewVote(Base):
    __tablename__ = "review_votes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    review_id: Mapped[str] = mapped_column(
        ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False,
    )
    is_agree: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    review: Mapped[Review] = relationship(back_populates="votes")

    __table_args__ = (UniqueConstraint("user_id", "review_id", name="uq_review_votes_user_review"),)


class FlavorRange(Base):
    """Spread of one attribute across a user's favorable reviews."""

    __tablename__ = "flavor_ranges"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    attribute: Mapped[str] = mapped_column(String(32))
    min_value: Mapped[float] = mapped_column(Float, nullable=False)
    max_value: Mapped[float] = mapped_column(Float, nullable=False)
    median_value: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (PrimaryKeyConstraint("user_id", "attribute"),)
