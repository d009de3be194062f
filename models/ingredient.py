"""
Ingredient Models

Contains the shared Ingredient model and the IngredientAmount model that
links a recipe to an ingredient with an amount.
"""

from sqlalchemy.orm import validates

from .base import BaseObject, check_int16, db
from .schema import Attribute, INT16, STRING, ToMany, ToOne


class Ingredient(BaseObject):
    """Ingredient shared by every amount that uses it. Names are unique."""
    __properties__ = {
        'name': Attribute(STRING),
        'amounts': ToMany('IngredientAmount', inverse='ingredient'),
    }
    # Relationship whose emptiness makes an ingredient an orphan
    __references__ = 'amounts'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, unique=True, nullable=False, index=True)
    # Only deleted once unreferenced, so children are never touched
    amounts = db.relationship('IngredientAmount', back_populates='ingredient', passive_deletes='all')

    def __repr__(self):
        return f'<Ingredient {self.name!r}>'


class IngredientAmount(BaseObject):
    """An amount of an ingredient within a recipe. `number` is the display order."""
    __properties__ = {
        'amount': Attribute(STRING),
        'number': Attribute(INT16),
        'ingredient': ToOne('Ingredient', inverse='amounts'),
        'recipe_used_in': ToOne('Recipe', inverse='ingredient_amounts'),
    }

    id = db.Column(db.Integer, primary_key=True)
    amount = db.Column(db.String, nullable=False)
    number = db.Column(db.SmallInteger, nullable=False)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=False, index=True)
    recipe_used_in_id = db.Column(db.Integer, db.ForeignKey('recipe.id'), nullable=False, index=True)
    ingredient = db.relationship('Ingredient', back_populates='amounts')
    recipe_used_in = db.relationship('Recipe', back_populates='ingredient_amounts')

    @validates('number')
    def validate_number(self, key, value):
        return check_int16(key, value)

    def __repr__(self):
        return f'<IngredientAmount {self.number} {self.amount!r}>'
