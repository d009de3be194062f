"""
Store Manager

Opens or creates the on-disk store, detects a schema version mismatch
against the current model and migrates before handing out a Session.

Migration always writes to a temporary store first. The primary store is
replaced only once the migrated copy is complete, so readers see either the
old store or the fully migrated one.
"""

import logging
import os
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .errors import StoreUnavailable
from .mapping import get_mapping
from .migration import migrate
from .session import Session
from .stamp import has_tables, read_version, write_version
from .versions import CURRENT_MODEL

logger = logging.getLogger(__name__)

TEMPORARY_PREFIX = 'Temporary'


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    # Enable SQLite foreign key enforcement
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def store_engine(path):
    return create_engine(f'sqlite:///{path}')


def default_temporary_path(path):
    """TemporaryRecipeBook.sqlite beside RecipeBook.sqlite."""
    directory, name = os.path.split(os.path.abspath(path))
    return os.path.join(directory, TEMPORARY_PREFIX + name)


def create_store(path, model=CURRENT_MODEL):
    """Create an empty store for `model` and stamp its version."""
    engine = store_engine(path)
    try:
        model.metadata.create_all(engine)
        with engine.begin() as connection:
            write_version(connection, model.version)
    finally:
        engine.dispose()
    logger.info("Created %s store at %s", model.version, path)


def store_version(path):
    """Return the version stamped in the store at `path` (None if unstamped)."""
    engine = store_engine(path)
    try:
        with engine.connect() as connection:
            return read_version(connection)
    finally:
        engine.dispose()


def _discard(path):
    for leftover in (path, path + '-journal'):
        if os.path.exists(leftover):
            os.remove(leftover)


def _migrate_in_place(path, version, model, mapping, temporary_path):
    _discard(temporary_path)
    try:
        migrate(path, version, model, temporary_path, mapping)
        os.replace(temporary_path, path)
    except Exception:
        _discard(temporary_path)
        raise
    logger.info("Replaced %s store at %s with migrated %s store", version, path, model.version)


def prepare_store(path, mapping_name='v1', model=CURRENT_MODEL, temporary_path=None):
    """
    Make sure a store for `model` exists at `path`, migrating it if needed.

    Returns the version the store had before it was prepared (None for a new
    store). Raises StoreUnavailable on I/O failure or an unknown version, and
    lets MigrationIntegrityError / MappingConfigurationError through.
    """
    mapping = get_mapping(mapping_name)
    mapping.validate()
    temporary_path = temporary_path or default_temporary_path(path)

    try:
        if not os.path.exists(path):
            create_store(path, model)
            return None

        engine = store_engine(path)
        try:
            with engine.connect() as connection:
                populated = has_tables(connection)
                version = read_version(connection)
        finally:
            engine.dispose()

        if version is None:
            if populated:
                raise StoreUnavailable(f"Store at {path} has no schema version stamp")
            create_store(path, model)
            return None

        if version == model.version:
            logger.debug("Store at %s is current (%s)", path, version)
            return version

        if version not in mapping.version_names:
            raise StoreUnavailable(f"Store at {path} has unknown schema version {version!r}")

        logger.info("Store at %s is %s, migrating to %s", path, version, model.version)
        _migrate_in_place(path, version, model, mapping, temporary_path)
        return version

    except (OSError, SQLAlchemyError) as e:
        logger.error("Store at %s unavailable: %s", path, e)
        raise StoreUnavailable(f"Cannot open store at {path}: {e}") from e


def open_store(path, mapping_name='v1', model=CURRENT_MODEL, temporary_path=None):
    """Open (creating or migrating as needed) the store at `path` and return a Session."""
    prepare_store(path, mapping_name=mapping_name, model=model, temporary_path=temporary_path)
    engine = store_engine(path)
    return Session(sessionmaker(bind=engine)(), engine=engine)
