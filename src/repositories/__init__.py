"""
Cached Repositories

One repository per cached collection, all sharing the read path in
``base.CachedRepository``.
"""

from .base import CachedRepository, CollectionRepository
from .dto import (
    IngredientDTO,
    IngredientRef,
    MenuItemDetail,
    MenuItemDTO,
    RestaurantDTO,
    RestaurantRef,
)
from .ingredient import IngredientListCache
from .menu import MenuDetailCache, MenuListCache
from .restaurant import RestaurantListCache

__all__ = [
    "CachedRepository",
    "CollectionRepository",
    "MenuListCache",
    "MenuDetailCache",
    "IngredientListCache",
    "RestaurantListCache",
    "MenuItemDTO",
    "MenuItemDetail",
    "IngredientDTO",
    "IngredientRef",
    "RestaurantDTO",
    "RestaurantRef",
]
