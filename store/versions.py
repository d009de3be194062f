"""
Schema Versions

Every schema version a store may have been written with, oldest first.
The last entry is the current model, described by the ORM classes.
"""

from models import ENTITIES, db
from models.schema import Attribute, BINARY, INT16, STRING, EntityDescription, ObjectModel, ToMany, ToOne


def _ingredient():
    return EntityDescription('Ingredient', {
        'name': Attribute(STRING),
        'amounts': ToMany('IngredientAmount', inverse='ingredient'),
    })


def _tag():
    return EntityDescription('Tag', {
        'name': Attribute(STRING),
        'recipes': ToMany('Recipe', inverse='tags', secondary='recipe_tag'),
    })


def _legacy_recipe():
    # Steps were shared through recipe_steps before v1.3
    return EntityDescription('Recipe', {
        'name': Attribute(STRING),
        'images': ToMany('Image', inverse='recipe_used_in'),
        'ingredient_amounts': ToMany('IngredientAmount', inverse='recipes_used_in'),
        'steps': ToMany('Step', inverse='recipes_used_in', secondary='recipe_steps'),
        'tags': ToMany('Tag', inverse='recipes', secondary='recipe_tag'),
    })


def _legacy_ingredient_amount():
    # The owner relationship was mis-named recipes_used_in before v1.3
    return EntityDescription('IngredientAmount', {
        'amount': Attribute(STRING),
        'number': Attribute(INT16),
        'ingredient': ToOne('Ingredient', inverse='amounts'),
        'recipes_used_in': ToOne('Recipe', inverse='ingredient_amounts'),
    })


V1_1 = ObjectModel('v1.1', [
    _legacy_recipe(),
    _ingredient(),
    _legacy_ingredient_amount(),
    EntityDescription('Step', {
        'number': Attribute(INT16),
        'summary': Attribute(STRING, default=''),
        'detail': Attribute(STRING, default=''),
        'image_data': Attribute(BINARY, optional=True),
        'recipes_used_in': ToMany('Recipe', inverse='steps', secondary='recipe_steps'),
    }),
    _tag(),
    EntityDescription('Image', {
        'image_data': Attribute(BINARY),
        'index': Attribute(INT16),
        'recipe_used_in': ToOne('Recipe', inverse='images', optional=True),
    }),
])

V1_2 = ObjectModel('v1.2', [
    _legacy_recipe(),
    _ingredient(),
    _legacy_ingredient_amount(),
    EntityDescription('Step', {
        'number': Attribute(INT16),
        'summary': Attribute(STRING, default=''),
        'detail': Attribute(STRING, default=''),
        'images': ToMany('Image', inverse='step_used_in'),
        'recipes_used_in': ToMany('Recipe', inverse='steps', secondary='recipe_steps'),
    }),
    _tag(),
    EntityDescription('Image', {
        'image_data': Attribute(BINARY),
        'index': Attribute(INT16),
        'recipe_used_in': ToOne('Recipe', inverse='images', optional=True),
        'step_used_in': ToOne('Step', inverse='images', optional=True),
    }),
])

V1_3 = ObjectModel('v1.3', [cls.entity_description() for cls in ENTITIES], metadata=db.metadata)

MODEL_VERSIONS = (V1_1, V1_2, V1_3)
CURRENT_MODEL = MODEL_VERSIONS[-1]
