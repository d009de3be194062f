"""
Recipe Editing Service

Operations on a recipe's steps, ingredient amounts, tags and images.
Shared entities are looked up with find-or-create and reclaimed once the
last reference to them is removed.
"""

from models import Image, Ingredient, IngredientAmount, Step, Tag
from utils.image_handler import process_image_data
from .ordering import ordered, renumber


def add_step(recipe, summary='', detail=''):
    """Append a step numbered after the existing ones."""
    step = Step(number=len(recipe.steps), summary=summary, detail=detail)
    recipe.steps.add(step)
    return step


def remove_step(recipe, step):
    """Remove a step (deleted on save with its images) and renumber the rest."""
    recipe.steps.discard(step)
    renumber(ordered(recipe.steps))


def add_ingredient_amount(session, recipe, name, amount):
    """Append an amount of the ingredient called `name`."""
    ingredient = session.find_or_create(Ingredient, name)
    ingredient_amount = IngredientAmount(
        amount=amount,
        number=len(recipe.ingredient_amounts),
        ingredient=ingredient,
    )
    recipe.ingredient_amounts.add(ingredient_amount)
    return ingredient_amount


def remove_ingredient_amount(session, recipe, ingredient_amount):
    """Remove an ingredient amount, renumber the rest and reclaim an unused ingredient."""
    recipe.ingredient_amounts.discard(ingredient_amount)
    renumber(ordered(recipe.ingredient_amounts))
    session.purge_orphans()


def update_ingredient(session, ingredient_amount, name):
    """
    Point an ingredient amount at the ingredient called `name`.

    The previous ingredient is shared, so it is never renamed in place; it is
    reclaimed instead if nothing else uses it.
    """
    previous = ingredient_amount.ingredient
    if previous is not None and previous.name == name:
        return previous
    ingredient_amount.ingredient = session.find_or_create(Ingredient, name)
    if previous is not None:
        session.purge_orphans()
    return ingredient_amount.ingredient


def add_tag(session, recipe, name):
    """Tag a recipe, reusing an existing tag of the same name."""
    tag = session.find_or_create(Tag, name)
    recipe.tags.add(tag)
    return tag


def remove_tag(session, recipe, tag):
    """Untag a recipe, deleting the tag if no other recipe uses it."""
    recipe.tags.discard(tag)
    session.purge_orphans()


def add_image(owner, image_data):
    """Validate image bytes and append them to a recipe's or step's images."""
    image = Image(image_data=process_image_data(image_data), index=len(owner.images))
    owner.images.add(image)
    return image


def remove_image(owner, image):
    owner.images.discard(image)
    renumber(ordered(owner.images, key='index'), key='index')


def recipe_to_dict(recipe):
    """Serialize a recipe for the JSON API."""
    return {
        'id': recipe.id,
        'name': recipe.name,
        'ingredients': [
            {
                'number': ingredient_amount.number,
                'name': ingredient_amount.ingredient.name,
                'amount': ingredient_amount.amount,
            }
            for ingredient_amount in ordered(recipe.ingredient_amounts)
        ],
        'steps': [
            {
                'number': step.number,
                'summary': step.summary,
                'detail': step.detail,
                'images': [image.index for image in ordered(step.images, key='index')],
            }
            for step in ordered(recipe.steps)
        ],
        'tags': sorted(tag.name for tag in recipe.tags),
        'images': [image.index for image in ordered(recipe.images, key='index')],
    }
