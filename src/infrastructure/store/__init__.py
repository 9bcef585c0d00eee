"""
Source Store Module

- SqlAlchemySourceStore: relational source of truth (SQLAlchemy asyncio)
- InvalidatingStore: invalidates the cache after each successful mutation
- models: declarative models for the catalogue collections
"""

from .invalidating_store import InvalidatingStore, TrackingSession
from .models import MODELS, Base, Ingredient, MenuItem, MenuItemOnRestaurant, Restaurant
from .sqlalchemy_store import SessionOperations, SqlAlchemySourceStore

__all__ = [
    "InvalidatingStore",
    "TrackingSession",
    "SqlAlchemySourceStore",
    "SessionOperations",
    "MODELS",
    "Base",
    "MenuItem",
    "Ingredient",
    "Restaurant",
    "MenuItemOnRestaurant",
]
