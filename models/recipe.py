"""
Recipe Models

Contains the Recipe, Step and Image models. Steps, images and ingredient
amounts are owned by their recipe and deleted with it.
"""

from sqlalchemy.orm import validates

from .base import BaseObject, check_int16, db
from .schema import Attribute, BINARY, INT16, STRING, ToMany, ToOne


class Recipe(BaseObject):
    """Recipe with owned images, ingredient amounts and steps, and shared tags."""
    __properties__ = {
        'name': Attribute(STRING),
        'images': ToMany('Image', inverse='recipe_used_in'),
        'ingredient_amounts': ToMany('IngredientAmount', inverse='recipe_used_in'),
        'steps': ToMany('Step', inverse='recipe_used_in'),
        'tags': ToMany('Tag', inverse='recipes', secondary='recipe_tag'),
    }

    id = db.Column(db.Integer, primary_key=True)
    # May be empty while a recipe is being created
    name = db.Column(db.String, nullable=False, index=True)
    images = db.relationship('Image', back_populates='recipe_used_in',
                             cascade='all, delete-orphan', collection_class=set)
    ingredient_amounts = db.relationship('IngredientAmount', back_populates='recipe_used_in',
                                         cascade='all, delete-orphan', collection_class=set)
    steps = db.relationship('Step', back_populates='recipe_used_in',
                            cascade='all, delete-orphan', collection_class=set)
    tags = db.relationship('Tag', secondary='recipe_tag', back_populates='recipes', collection_class=set)

    def __repr__(self):
        return f'<Recipe {self.name!r}>'


class Step(BaseObject):
    """A numbered step of a recipe. `number` is the display order."""
    __properties__ = {
        'number': Attribute(INT16),
        'summary': Attribute(STRING, default=''),
        'detail': Attribute(STRING, default=''),
        'images': ToMany('Image', inverse='step_used_in'),
        'recipe_used_in': ToOne('Recipe', inverse='steps'),
    }

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.SmallInteger, nullable=False)
    summary = db.Column(db.String, nullable=False)
    detail = db.Column(db.String, nullable=False)
    recipe_used_in_id = db.Column(db.Integer, db.ForeignKey('recipe.id'), nullable=False, index=True)
    recipe_used_in = db.relationship('Recipe', back_populates='steps')
    images = db.relationship('Image', back_populates='step_used_in',
                             cascade='all, delete-orphan', collection_class=set)

    @validates('number')
    def validate_number(self, key, value):
        return check_int16(key, value)

    def __repr__(self):
        return f'<Step {self.number} {self.summary!r}>'


class Image(BaseObject):
    """Image blob owned by either a recipe or a step. `index` is the display order."""
    __properties__ = {
        'image_data': Attribute(BINARY),
        'index': Attribute(INT16),
        'recipe_used_in': ToOne('Recipe', inverse='images', optional=True),
        'step_used_in': ToOne('Step', inverse='images', optional=True),
    }
    # Owned by one of two parents: only an orphan when detached from both
    __mapper_args__ = {'legacy_is_orphan': True}

    id = db.Column(db.Integer, primary_key=True)
    image_data = db.Column(db.LargeBinary, nullable=False)
    index = db.Column(db.SmallInteger, nullable=False)
    recipe_used_in_id = db.Column(db.Integer, db.ForeignKey('recipe.id'), nullable=True, index=True)
    step_used_in_id = db.Column(db.Integer, db.ForeignKey('step.id'), nullable=True, index=True)
    recipe_used_in = db.relationship('Recipe', back_populates='images')
    step_used_in = db.relationship('Step', back_populates='images')

    @validates('index')
    def validate_index(self, key, value):
        return check_int16(key, value)

    def __repr__(self):
        return f'<Image {self.index}>'
