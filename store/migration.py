"""
Migration Engine

Moves the records of a store from one schema version to another.

The source store is loaded into an ObjectGraph, transformed hop by hop
(v1.1 -> v1.2 -> v1.3) and written once to the destination path. Each hop
runs in two passes, like a Core Data migration manager:

1. create a destination instance for every source instance, copying the
   attributes whose names exist in both versions (entity policies may add
   synthesized instances here);
2. resolve relationships: same-named to-one and many-to-many relationships
   are mapped through the source -> destination associations, then entity
   policies fill in the relationships they provide.

A required relationship or reference that cannot be resolved raises
MigrationIntegrityError and nothing is written to the destination.
"""

import logging

from sqlalchemy import create_engine

from .errors import MigrationIntegrityError
from .stamp import write_version

logger = logging.getLogger(__name__)


class Instance:
    """One record of an entity inside an ObjectGraph."""

    __slots__ = ('entity', 'pk', 'values', 'relationships')

    def __init__(self, entity, pk, values=None, relationships=None):
        self.entity = entity
        self.pk = pk
        # attribute name -> value
        self.values = values or {}
        # to-one name -> target pk, many-to-many name -> set of target pks
        self.relationships = relationships or {}

    def __repr__(self):
        return f'<Instance {self.entity}#{self.pk}>'


class ObjectGraph:
    """All records of one store, keyed by entity name and primary key."""

    def __init__(self, model):
        self.model = model
        self._instances = {name: {} for name in model.entities}

    def instances(self, entity_name):
        records = self._instances.get(entity_name, {})
        return [records[pk] for pk in sorted(records)]

    def get(self, entity_name, pk):
        return self._instances[entity_name].get(pk)

    def count(self, entity_name):
        return len(self._instances.get(entity_name, {}))

    def add(self, instance):
        self._instances[instance.entity][instance.pk] = instance
        return instance

    def insert(self, entity_name, values=None):
        """Create a new instance with the next free primary key."""
        records = self._instances[entity_name]
        pk = max(records, default=0) + 1
        return self.add(Instance(entity_name, pk, dict(values or {})))

    @classmethod
    def load(cls, connection, model):
        """Read every record of `model` from an open connection."""
        graph = cls(model)

        for entity in model.entities.values():
            for row in connection.execute(model.table(entity.name).select()).mappings():
                values = {name: row[name] for name in entity.attributes}
                relationships = {name: row[prop.column_name(name)] for name, prop in entity.to_one.items()}
                for name in entity.many_to_many:
                    relationships[name] = set()
                graph.add(Instance(entity.name, row['id'], values, relationships))

        for entity in model.entities.values():
            for name, prop in entity.many_to_many.items():
                secondary = model.secondary(prop.secondary)
                own = f'{entity.table_name}_id'
                other = f'{model.entity(prop.target).table_name}_id'
                for row in connection.execute(secondary.select()).mappings():
                    instance = graph.get(entity.name, row[own])
                    if instance is None:
                        raise MigrationIntegrityError(
                            f"{prop.secondary} references missing {entity.name} #{row[own]}")
                    instance.relationships[name].add(row[other])

        return graph

    def write(self, connection):
        """Insert every record into a connection whose tables already exist."""
        model = self.model
        entities_by_table = {entity.table_name: entity for entity in model.entities.values()}
        pairs = {}

        for table in model.metadata.sorted_tables:
            entity = entities_by_table.get(table.name)
            if entity is None:
                continue
            rows = []
            for instance in self.instances(entity.name):
                row = {'id': instance.pk}
                for name in entity.attributes:
                    row[name] = instance.values.get(name)
                for name, prop in entity.to_one.items():
                    row[prop.column_name(name)] = instance.relationships.get(name)
                rows.append(row)

                for name, prop in entity.many_to_many.items():
                    own = f'{entity.table_name}_id'
                    other = f'{model.entity(prop.target).table_name}_id'
                    for target in instance.relationships.get(name, ()):
                        pairs.setdefault(prop.secondary, set()).add(
                            frozenset({(own, instance.pk), (other, target)}))
            if rows:
                connection.execute(table.insert(), rows)

        for secondary, links in pairs.items():
            connection.execute(model.secondary(secondary).insert(), [dict(link) for link in links])


class EntityMigrationPolicy:
    """
    Per-entity migration hooks. The default copies attributes and lets the
    manager map relationships by name.

    `provides` names destination relationships the policy sets itself; the
    manager does not map those by name.
    """
    provides = frozenset()

    def create_destination_instance(self, source, manager):
        return manager.default_instance(source)

    def create_relationships(self, source, destination, manager):
        pass


DEFAULT_POLICY = EntityMigrationPolicy()


class MigrationManager:
    """Runs one hop between two consecutive schema versions."""

    def __init__(self, source_model, destination_model, policies=None):
        self.source_model = source_model
        self.destination_model = destination_model
        self.policies = policies or {}
        self.destination = None
        self._destinations = {}
        self._sources = {}

    def policy(self, entity_name):
        return self.policies.get(entity_name, DEFAULT_POLICY)

    def associate(self, source, destination):
        self._destinations.setdefault(source.entity, {})[source.pk] = destination.pk
        self._sources.setdefault(destination.entity, {})[destination.pk] = source

    def destination_pk(self, entity_name, source_pk):
        """Return the destination pk migrated from a source record."""
        try:
            return self._destinations[entity_name][source_pk]
        except KeyError:
            raise MigrationIntegrityError(
                f"No migrated {entity_name} for source record #{source_pk}") from None

    def insert_new(self, entity_name, values=None):
        """Create a destination instance with no source counterpart."""
        return self.destination.insert(entity_name, values)

    def default_instance(self, source):
        """Create and associate a destination instance copying same-named attributes."""
        source_entity = self.source_model.entity(source.entity)
        entity = self.destination_model.entity(source.entity)

        values = {}
        for name, attribute in entity.attributes.items():
            if name in source_entity.attributes:
                values[name] = source.values.get(name)
            else:
                values[name] = attribute.default

        destination = self.destination.insert(entity.name, values)
        self.associate(source, destination)
        return destination

    def migrate(self, source_graph):
        """Return a new ObjectGraph of the destination model."""
        self.destination = ObjectGraph(self.destination_model)
        self._destinations = {}
        self._sources = {}

        shared = [name for name in self.destination_model.entities if name in self.source_model]
        for name in shared:
            policy = self.policy(name)
            for source in source_graph.instances(name):
                policy.create_destination_instance(source, self)

        for name in shared:
            policy = self.policy(name)
            for pk, source in sorted(self._sources.get(name, {}).items()):
                destination = self.destination.get(name, pk)
                self.copy_relationships(source, destination, exclude=policy.provides)
                policy.create_relationships(source, destination, self)

        self.check_integrity()
        return self.destination

    def copy_relationships(self, source, destination, exclude=()):
        source_entity = self.source_model.entity(source.entity)
        entity = self.destination_model.entity(destination.entity)

        for name, prop in entity.to_one.items():
            if name in exclude:
                continue
            source_prop = source_entity.to_one.get(name)
            if source_prop is None:
                destination.relationships.setdefault(name, None)
                continue
            source_pk = source.relationships.get(name)
            destination.relationships[name] = (
                None if source_pk is None else self.destination_pk(prop.target, source_pk))

        for name, prop in entity.many_to_many.items():
            if name in exclude:
                continue
            targets = set()
            if name in source_entity.many_to_many:
                for source_pk in source.relationships.get(name, ()):
                    targets.add(self.destination_pk(prop.target, source_pk))
            destination.relationships[name] = targets

    def check_integrity(self):
        """Every required attribute and to-one relationship must be set."""
        for entity in self.destination_model.entities.values():
            required = [name for name, prop in entity.to_one.items() if not prop.optional]
            mandatory = [name for name, attr in entity.attributes.items() if not attr.optional]
            for instance in self.destination.instances(entity.name):
                for name in required:
                    target = instance.relationships.get(name)
                    if target is None:
                        raise MigrationIntegrityError(
                            f"{entity.name} #{instance.pk} has no {name} after migration")
                    if self.destination.get(entity.to_one[name].target, target) is None:
                        raise MigrationIntegrityError(
                            f"{entity.name} #{instance.pk} references missing {name} #{target}")
                for name in mandatory:
                    if instance.values.get(name) is None:
                        raise MigrationIntegrityError(
                            f"{entity.name} #{instance.pk} has no value for {name} after migration")


def migrate_graph(graph, source_version, destination_model, mapping):
    """
    Transform `graph` to `destination_model`.

    With no `source_version` the graph already has the destination shape and
    only the generic copy runs.
    """
    if source_version is None:
        return MigrationManager(destination_model, destination_model).migrate(graph)

    for source_model, target_model in mapping.hops(source_version, destination_model.version):
        logger.info("Migrating %s -> %s", source_model.version, target_model.version)
        manager = MigrationManager(source_model, target_model, mapping.policies(source_model.version))
        graph = manager.migrate(graph)
    return graph


def migrate(source_path, source_version, destination_model, destination_path, mapping):
    """
    Migrate the store at `source_path` into a new store at `destination_path`.

    The destination is created from scratch, filled in one transaction and
    stamped with the destination version. The caller owns moving it into place.
    """
    if source_version is None:
        source_model = destination_model
    else:
        source_model = mapping.model(source_version)

    source_engine = create_engine(f'sqlite:///{source_path}')
    try:
        with source_engine.connect() as connection:
            graph = ObjectGraph.load(connection, source_model)
    finally:
        source_engine.dispose()

    graph = migrate_graph(graph, source_version, destination_model, mapping)

    destination_engine = create_engine(f'sqlite:///{destination_path}')
    try:
        destination_model.metadata.create_all(destination_engine)
        with destination_engine.begin() as connection:
            graph.write(connection)
            write_version(connection, destination_model.version)
    finally:
        destination_engine.dispose()

    logger.info("Migrated %s store to %s", source_version or destination_model.version,
                destination_model.version)
    return destination_path
