"""
Cached Entity DTOs

Immutable pydantic models for everything the cache tiers hold. Payloads
use camelCase field names (``logoUrl``, ``createdAt``) and epoch
millisecond timestamps; ``from_row`` builds a DTO from a source store row.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def to_epoch_ms(value: datetime | int | float | None) -> int:
    """Convert a store timestamp to epoch milliseconds. Naive datetimes are UTC."""
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class CachedModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class MenuItemDTO(CachedModel):
    id: str
    name: str
    slug: str | None = None
    logo_url: str | None = None
    created_at: int = Field(default=0, description="Epoch milliseconds")

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "MenuItemDTO":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            slug=row.get("slug"),
            logo_url=row.get("logo_url"),
            created_at=to_epoch_ms(row.get("created_at")),
        )


class RestaurantDTO(CachedModel):
    id: str
    name: str
    slug: str | None = None
    logo_url: str | None = None
    created_at: int = Field(default=0, description="Epoch milliseconds")

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "RestaurantDTO":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            slug=row.get("slug"),
            logo_url=row.get("logo_url"),
            created_at=to_epoch_ms(row.get("created_at")),
        )


class IngredientDTO(CachedModel):
    id: str
    name: str
    created_at: int = Field(default=0, description="Epoch milliseconds")

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "IngredientDTO":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            created_at=to_epoch_ms(row.get("created_at")),
        )


class IngredientRef(CachedModel):
    id: str
    name: str
    mandatory: bool = False


class RestaurantRef(CachedModel):
    id: str
    name: str


class MenuItemDetail(CachedModel):
    """A menu item with its ingredients and the restaurants serving it."""

    id: str
    name: str
    slug: str | None = None
    logo_url: str | None = None
    description: str | None = None
    ingredients: tuple[IngredientRef, ...] = ()
    restaurants: tuple[RestaurantRef, ...] = ()

    @classmethod
    def from_row(
        cls,
        row: dict[str, Any],
        ingredients: list[dict[str, Any]] | None = None,
        restaurants: list[dict[str, Any]] | None = None,
    ) -> "MenuItemDetail":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            slug=row.get("slug"),
            logo_url=row.get("logo_url"),
            description=row.get("description"),
            ingredients=tuple(
                IngredientRef(id=str(i["id"]), name=i["name"], mandatory=bool(i.get("mandatory")))
                for i in ingredients or ()
            ),
            restaurants=tuple(
                RestaurantRef(id=str(r["id"]), name=r["name"]) for r in restaurants or ()
            ),
        )
