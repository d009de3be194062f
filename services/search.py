"""
Search Service

Case-insensitive substring search over recipe names, ingredient names and
tag names. Results are ordered by recipe name.
"""

from models import Ingredient, IngredientAmount, Recipe, Tag

SEARCH_CATEGORIES = ('name', 'ingredient', 'tag')


def list_recipes(session):
    return session.query(Recipe).order_by(Recipe.name).all()


def search_recipes(session, text, category='name'):
    """
    Return recipes matching `text` in the given category.
    Blank text matches nothing.
    """
    if category not in SEARCH_CATEGORIES:
        raise ValueError(f"Unknown search category: {category!r}")

    text = (text or '').strip()
    if not text:
        return []

    query = session.query(Recipe)
    if category == 'name':
        query = query.filter(Recipe.name.icontains(text, autoescape=True))
    elif category == 'ingredient':
        query = query.filter(Recipe.ingredient_amounts.any(
            IngredientAmount.ingredient.has(Ingredient.name.icontains(text, autoescape=True))))
    else:
        query = query.filter(Recipe.tags.any(Tag.name.icontains(text, autoescape=True)))

    return query.order_by(Recipe.name).all()
