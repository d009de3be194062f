"""
Models Package

Exports all entity models and the db instance for use throughout the application.
"""

from .base import db, BaseObject

from .recipe import Recipe, Step, Image
from .ingredient import Ingredient, IngredientAmount
from .tag import Tag, recipe_tag
from .settings import StoreMetadata, VERSION_KEY

# Every entity of the current schema, in declaration order
ENTITIES = (Recipe, Ingredient, IngredientAmount, Step, Tag, Image)

# Shared entities, reclaimed once nothing references them
SHARED_ENTITIES = (Tag, Ingredient)

__all__ = [
    'db',
    'BaseObject',
    'Recipe',
    'Step',
    'Image',
    'Ingredient',
    'IngredientAmount',
    'Tag',
    'recipe_tag',
    'StoreMetadata',
    'VERSION_KEY',
    'ENTITIES',
    'SHARED_ENTITIES',
]
