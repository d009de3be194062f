"""
Services Package

Domain operations on recipes, built on top of a store Session.
"""

from .ordering import (
    ordered,
    renumber,
    move_item,
    move_step,
    move_ingredient_amount,
    move_image,
)

from .recipes import (
    add_step,
    remove_step,
    add_ingredient_amount,
    remove_ingredient_amount,
    update_ingredient,
    add_tag,
    remove_tag,
    add_image,
    remove_image,
    recipe_to_dict,
)

from .search import (
    SEARCH_CATEGORIES,
    list_recipes,
    search_recipes,
)

__all__ = [
    # Ordering
    'ordered',
    'renumber',
    'move_item',
    'move_step',
    'move_ingredient_amount',
    'move_image',
    # Recipes
    'add_step',
    'remove_step',
    'add_ingredient_amount',
    'remove_ingredient_amount',
    'update_ingredient',
    'add_tag',
    'remove_tag',
    'add_image',
    'remove_image',
    'recipe_to_dict',
    # Search
    'SEARCH_CATEGORIES',
    'list_recipes',
    'search_recipes',
]
