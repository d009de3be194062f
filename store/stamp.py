"""
Version Stamp

Reads and writes the schema version recorded in a store's
store_metadata table. Works for stores of any version.
"""

from sqlalchemy import column, inspect, select, table

from models.schema import METADATA_TABLE
from models.settings import VERSION_KEY

store_metadata = table(METADATA_TABLE, column('key'), column('value'))


def has_tables(connection):
    return bool(inspect(connection).get_table_names())


def read_version(connection):
    """Return the stamped version, or None when the store carries no stamp."""
    if not inspect(connection).has_table(METADATA_TABLE):
        return None
    row = connection.execute(
        select(store_metadata.c.value).where(store_metadata.c.key == VERSION_KEY)
    ).first()
    return row[0] if row else None


def write_version(connection, version):
    """Stamp `version`, replacing any previous stamp."""
    connection.execute(store_metadata.delete().where(store_metadata.c.key == VERSION_KEY))
    connection.execute(store_metadata.insert().values(key=VERSION_KEY, value=version))
