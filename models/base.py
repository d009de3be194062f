"""
Database Base Module

Creates the SQLAlchemy database instance that all models inherit from,
and the BaseObject every entity derives from.
This is separate to avoid circular imports.
"""

from collections.abc import Iterable

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import object_session

from store.errors import ValidationError
from .schema import EntityDescription, INT16_MAX, INT16_MIN

# Create the SQLAlchemy instance
# This is initialized with the Flask app in app.py; the models also work
# with a plain SQLAlchemy session opened by store.manager
db = SQLAlchemy()


def check_int16(name, value):
    """Reject values that do not fit a signed 16-bit ordering index."""
    if value is None:
        return value
    if not INT16_MIN <= value <= INT16_MAX:
        raise ValidationError(f"{name} out of int16 range: {value}")
    return value


class BaseObject(db.Model):
    """
    Common base for all entities.

    Subclasses declare `__properties__`, a static mapping of property name to
    Attribute / ToOne / ToMany. Construction requires every mandatory
    attribute; defaults are filled in for the rest. Relationships default to
    empty and may not mix objects from different sessions.
    """
    __abstract__ = True
    __properties__ = {}

    def __init__(self, **kwargs):
        description = self.entity_description()

        missing = [name for name, attribute in description.attributes.items()
                   if attribute.mandatory and kwargs.get(name) is None]
        if missing:
            raise ValidationError(f"{type(self).__name__} requires {', '.join(sorted(missing))}")

        for name, attribute in description.attributes.items():
            if attribute.default is not None:
                kwargs.setdefault(name, attribute.default)

        sessions = set()
        for value in kwargs.values():
            related = value if isinstance(value, Iterable) and not isinstance(value, (str, bytes)) else [value]
            for obj in related:
                if isinstance(obj, BaseObject) and object_session(obj) is not None:
                    sessions.add(object_session(obj))
        if len(sessions) > 1:
            raise ValidationError(f"{type(self).__name__} relates objects from different sessions")

        super().__init__(**kwargs)

    @classmethod
    def properties(cls):
        return cls.__properties__

    @classmethod
    def entity_description(cls):
        return EntityDescription(cls.__name__, cls.__properties__)
