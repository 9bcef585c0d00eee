"""
SQLAlchemy 2.0 Models

Declarative models for the catalogue collections the cache core reads and
invalidates. The collection name used throughout the core is the model's
class name (``MenuItem``, ``Ingredient``, ...).
"""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all catalogue models."""

    pass


class TimestampMixin:
    """Adds a created_at timestamp."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


class MenuItem(TimestampMixin, Base):
    __tablename__ = "menu_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Ingredient(TimestampMixin, Base):
    __tablename__ = "ingredients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    mandatory: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    menu_item_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=True, index=True
    )


class Restaurant(TimestampMixin, Base):
    __tablename__ = "restaurants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)


class MenuItemOnRestaurant(TimestampMixin, Base):
    """Link between a menu item and a restaurant that serves it."""

    __tablename__ = "menu_items_on_restaurants"
    __table_args__ = (UniqueConstraint("menu_item_id", "restaurant_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    menu_item_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    restaurant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    price_override: Mapped[float | None] = mapped_column(Float, nullable=True)


MODELS: dict[str, type[Base]] = {
    model.__name__: model for model in (MenuItem, Ingredient, Restaurant, MenuItemOnRestaurant)
}
