"""
Tag Model

Tags are shared between recipes through the recipe_tag association table.
"""

from .base import BaseObject, db
from .schema import Attribute, STRING, ToMany

recipe_tag = db.Table(
    'recipe_tag',
    db.Column('recipe_id', db.Integer, db.ForeignKey('recipe.id'), primary_key=True),
    db.Column('tag_id', db.Integer, db.ForeignKey('tag.id'), primary_key=True),
)


class Tag(BaseObject):
    """Tag with a unique name. A tag used by no recipe is garbage."""
    __properties__ = {
        'name': Attribute(STRING),
        'recipes': ToMany('Recipe', inverse='tags', secondary='recipe_tag'),
    }
    __references__ = 'recipes'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, unique=True, nullable=False, index=True)
    recipes = db.relationship('Recipe', secondary=recipe_tag, back_populates='tags', collection_class=set)

    def __repr__(self):
        return f'<Tag {self.name!r}>'
