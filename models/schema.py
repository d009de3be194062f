"""
Schema Descriptors

Static descriptions of entity properties. Each entity declares its persisted
properties as Attribute / ToOne / ToMany so that generic code (fetching,
validation, migration) can work on any entity without per-type special cases.

An ObjectModel groups the entity descriptions of one schema version and
builds the matching SQLAlchemy tables.
"""

import re

from sqlalchemy import Column, ForeignKey, Integer, LargeBinary, MetaData, SmallInteger, String, Table

STRING = 'string'
INT16 = 'int16'
BINARY = 'binary'

INT16_MIN = -32768
INT16_MAX = 32767

COLUMN_TYPES = {
    STRING: String,
    INT16: SmallInteger,
    BINARY: LargeBinary,
}

METADATA_TABLE = 'store_metadata'


def table_name(entity_name):
    """Convert an entity name to its table name (IngredientAmount -> ingredient_amount)."""
    return re.sub(r'(?<!^)(?=[A-Z])', '_', entity_name).lower()


class Attribute:
    """A scalar attribute."""
    kind = 'attribute'

    def __init__(self, type, optional=False, default=None):
        if type not in COLUMN_TYPES:
            raise ValueError(f"Unknown attribute type: {type}")
        self.type = type
        self.optional = optional
        self.default = default

    @property
    def mandatory(self):
        """True if a value must be supplied when constructing the entity."""
        return not self.optional and self.default is None

    def column_name(self, name):
        return name

    def __repr__(self):
        return f"Attribute({self.type!r}, optional={self.optional})"


class ToOne:
    """A to-one relationship, stored as a `<name>_id` foreign key column."""
    kind = 'to_one'

    def __init__(self, target, inverse=None, optional=False):
        self.target = target
        self.inverse = inverse
        self.optional = optional

    def column_name(self, name):
        return f'{name}_id'

    def __repr__(self):
        return f"ToOne({self.target!r}, inverse={self.inverse!r})"


class ToMany:
    """
    A to-many relationship.

    With a secondary table it is many-to-many. Without one it is the inverse
    of a ToOne on the target and has no storage of its own.
    """
    kind = 'to_many'
    optional = True

    def __init__(self, target, inverse=None, secondary=None):
        self.target = target
        self.inverse = inverse
        self.secondary = secondary

    def __repr__(self):
        return f"ToMany({self.target!r}, inverse={self.inverse!r}, secondary={self.secondary!r})"


class EntityDescription:
    """The name and properties of one entity in one schema version."""

    def __init__(self, name, properties):
        self.name = name
        self.properties = dict(properties)

    @property
    def table_name(self):
        return table_name(self.name)

    def _of_kind(self, kind):
        return {name: prop for name, prop in self.properties.items() if prop.kind == kind}

    @property
    def attributes(self):
        return self._of_kind(Attribute.kind)

    @property
    def to_one(self):
        return self._of_kind(ToOne.kind)

    @property
    def many_to_many(self):
        return {name: prop for name, prop in self._of_kind(ToMany.kind).items() if prop.secondary}

    def __repr__(self):
        return f"EntityDescription({self.name!r})"


class ObjectModel:
    """
    All entity descriptions for one schema version.

    `metadata` may be supplied when the tables already exist (the ORM
    metadata for the current version); otherwise tables are built from the
    descriptions.
    """

    def __init__(self, version, entities, metadata=None):
        self.version = version
        self.entities = {entity.name: entity for entity in entities}
        self._metadata = metadata

    def __contains__(self, entity_name):
        return entity_name in self.entities

    def __repr__(self):
        return f"ObjectModel({self.version!r})"

    def entity(self, name):
        return self.entities[name]

    @property
    def metadata(self):
        if self._metadata is None:
            self._metadata = self.build_metadata()
        return self._metadata

    def table(self, entity_name):
        return self.metadata.tables[table_name(entity_name)]

    def secondary(self, name):
        return self.metadata.tables[name]

    def build_metadata(self, metadata=None):
        """Create SQLAlchemy tables for every entity in this version."""
        metadata = metadata if metadata is not None else MetaData()

        Table(
            METADATA_TABLE, metadata,
            Column('id', Integer, primary_key=True),
            Column('key', String(50), unique=True, nullable=False),
            Column('value', String(200)),
        )

        for entity in self.entities.values():
            columns = [Column('id', Integer, primary_key=True)]
            for name, attribute in entity.attributes.items():
                columns.append(Column(name, COLUMN_TYPES[attribute.type](), nullable=attribute.optional))
            for name, relationship in entity.to_one.items():
                target = table_name(relationship.target)
                columns.append(Column(relationship.column_name(name), Integer,
                                      ForeignKey(f'{target}.id'), nullable=relationship.optional))
            Table(entity.table_name, metadata, *columns)

        for entity in self.entities.values():
            for relationship in entity.many_to_many.values():
                if relationship.secondary in metadata.tables:
                    continue
                left = entity.table_name
                right = table_name(relationship.target)
                Table(
                    relationship.secondary, metadata,
                    Column(f'{left}_id', Integer, ForeignKey(f'{left}.id'), primary_key=True),
                    Column(f'{right}_id', Integer, ForeignKey(f'{right}.id'), primary_key=True),
                )

        return metadata
