"""
Session

Thin unit-of-work wrapper around a SQLAlchemy session. All fetch, insert,
delete and save operations of the application go through it.
"""

import logging

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import object_session

from models import SHARED_ENTITIES, Image, IngredientAmount, Step
from models.schema import ToMany
from .errors import SaveFailed, ValidationError

logger = logging.getLogger(__name__)

# (entity, owner relationships, owner collection, ordering attribute)
ORDERED_COLLECTIONS = (
    (Step, ('recipe_used_in',), 'steps', 'number'),
    (IngredientAmount, ('recipe_used_in',), 'ingredient_amounts', 'number'),
    (Image, ('recipe_used_in', 'step_used_in'), 'images', 'index'),
)


class Session:
    """
    An open handle to the recipe store.

    Wraps either a plain `sqlalchemy.orm.Session` (opened by
    store.manager.open_store) or Flask-SQLAlchemy's `db.session`.
    """

    def __init__(self, session, engine=None):
        self._session = session
        self._engine = engine

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def orm(self):
        """The wrapped SQLAlchemy session."""
        return self._session

    def query(self, entity):
        return self._session.query(entity)

    def fetch_all(self, entity, order_by=None):
        query = self._session.query(entity)
        if order_by is not None:
            query = query.order_by(getattr(entity, order_by))
        return query.all()

    def fetch(self, entity, field, value):
        """
        Fetch every `entity` whose `field` equals `value`. For a to-many
        relationship, fetch those whose collection contains `value`.
        """
        prop = entity.properties().get(field)
        if prop is None and field != 'id':
            raise ValueError(f"{entity.__name__} has no property {field!r}")
        query = self._session.query(entity)
        if prop is not None and prop.kind == ToMany.kind:
            return query.filter(getattr(entity, field).contains(value)).all()
        return query.filter_by(**{field: value}).all()

    def get(self, entity, pk):
        return self._session.get(entity, pk)

    def insert(self, obj):
        """Attach an unattached object (and what it cascades to) to the session."""
        own = _underlying(self._session)
        state = inspect(obj)
        cascaded = [related for related, *_ in state.mapper.cascade_iterator('save-update', state)]
        for related in [obj, *cascaded]:
            session = object_session(related)
            if session is not None and session is not own:
                raise ValidationError(f"{related!r} belongs to a different session")
        self._session.add(obj)
        return obj

    def delete(self, obj):
        """
        Delete `obj` and everything it owns, then reclaim orphaned tags and
        ingredients. A shared entity may only be deleted once unreferenced.
        """
        if isinstance(obj, SHARED_ENTITIES) and getattr(obj, obj.__references__):
            raise ValidationError(f"{obj!r} is still referenced")

        if obj in self._session.new:
            self._session.expunge(obj)
            return

        self._session.delete(obj)
        self.purge_orphans()

    def find_or_create(self, entity, name):
        """
        Return the `entity` (Tag or Ingredient) called `name`, creating and
        inserting it if there is none. Pending, unflushed objects are found too.
        """
        if not name:
            raise ValidationError(f"{entity.__name__} name may not be empty")

        for obj in self._session.new:
            if isinstance(obj, entity) and obj.name == name:
                return obj

        with self._session.no_autoflush:
            results = self._session.query(entity).filter_by(name=name).all()

        if not results:
            return self.insert(entity(name=name))
        if len(results) > 1:
            raise ValidationError(f"{len(results)} {entity.__name__} objects named {name!r}")
        return results[0]

    def purge_orphans(self):
        """Delete every tag and ingredient nothing refers to. Returns the count."""
        self._flush()

        orphans = []
        for entity in SHARED_ENTITIES:
            references = getattr(entity, entity.__references__)
            # Reload collections that may still hold deleted objects
            for obj in self._session.identity_map.values():
                if isinstance(obj, entity):
                    self._session.expire(obj, [entity.__references__])
            orphans.extend(self._session.query(entity).filter(~references.any()).all())

        for orphan in orphans:
            self._session.delete(orphan)
        if orphans:
            self._flush()
            logger.info("Purged %d orphaned tag(s)/ingredient(s)", len(orphans))
        return len(orphans)

    def _flush(self):
        try:
            self._session.flush()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise SaveFailed(f"Could not write pending changes: {e}") from e

    def save(self):
        """
        Commit all pending changes as one unit. Rolls back and raises SaveFailed
        on failure. Duplicate ordering numbers raise ValidationError and leave
        the pending changes in place.
        """
        self._check_ordering()
        try:
            self._session.commit()
        except (SQLAlchemyError, OSError) as e:
            self._session.rollback()
            logger.error("Save failed, rolled back: %s", e)
            raise SaveFailed(f"Could not save changes: {e}") from e

    def _check_ordering(self):
        """Steps and ingredient amounts of a recipe, and images of an owner, need distinct numbers."""
        deleted = self._session.deleted
        checked = set()
        with self._session.no_autoflush:
            for obj in [*self._session.new, *self._session.dirty]:
                for entity, owner_names, collection, key in ORDERED_COLLECTIONS:
                    if not isinstance(obj, entity):
                        continue
                    for owner_name in owner_names:
                        owner = getattr(obj, owner_name)
                        if owner is None or (id(owner), collection) in checked:
                            continue
                        checked.add((id(owner), collection))
                        values = [getattr(item, key) for item in getattr(owner, collection)
                                  if item not in deleted]
                        if len(values) != len(set(values)):
                            raise ValidationError(
                                f"{owner!r} has duplicate {collection} {key}s: {sorted(values)}")

    def rollback(self):
        self._session.rollback()

    def close(self):
        self._session.close()
        if self._engine is not None:
            self._engine.dispose()


def _underlying(session):
    """Resolve a scoped_session proxy to the session it currently wraps."""
    registry = getattr(session, 'registry', None)
    return registry() if registry is not None else session
