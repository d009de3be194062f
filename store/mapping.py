"""
Mapping Configuration

Named rule sets for migrating between schema versions. A MappingModel lists
the schema versions in order and the entity policies that apply when
migrating *from* a given version. Everything not covered by a policy is
migrated generically by name.
"""

import logging

from .errors import MappingConfigurationError, MigrationIntegrityError
from .migration import EntityMigrationPolicy
from .versions import MODEL_VERSIONS

logger = logging.getLogger(__name__)


class EntityMapping:
    """A policy applied to one entity when migrating from `source_version`."""

    def __init__(self, entity, source_version, policy):
        self.entity = entity
        self.source_version = source_version
        self.policy = policy

    def __repr__(self):
        return f'<EntityMapping {self.entity} from {self.source_version}>'


class MappingModel:
    """An ordered chain of schema versions plus the exceptions to generic mapping."""

    def __init__(self, name, versions, entity_mappings):
        self.name = name
        self.versions = tuple(versions)
        self.entity_mappings = list(entity_mappings)

    def __repr__(self):
        return f'<MappingModel {self.name}>'

    @property
    def version_names(self):
        return [model.version for model in self.versions]

    def model(self, version):
        for model in self.versions:
            if model.version == version:
                return model
        raise MappingConfigurationError(f"Mapping {self.name!r} does not know schema version {version!r}")

    def policies(self, source_version):
        """Entity name -> policy for the hop leaving `source_version`."""
        return {mapping.entity: mapping.policy
                for mapping in self.entity_mappings if mapping.source_version == source_version}

    def hops(self, source_version, destination_version):
        """Consecutive (source model, destination model) pairs between two versions."""
        names = self.version_names
        start = names.index(self.model(source_version).version)
        end = names.index(self.model(destination_version).version)
        if start >= end:
            raise MappingConfigurationError(
                f"Cannot migrate from {source_version} to {destination_version} with mapping {self.name!r}")
        return [(self.versions[i], self.versions[i + 1]) for i in range(start, end)]

    def validate(self):
        """
        Check that every hop can fill every required destination property.

        A required to-one relationship or mandatory attribute must exist with
        the same name in the source entity, or be provided by a policy.
        """
        names = self.version_names
        if len(set(names)) != len(names):
            raise MappingConfigurationError(f"Mapping {self.name!r} repeats a schema version")

        for mapping in self.entity_mappings:
            if mapping.source_version not in names[:-1]:
                raise MappingConfigurationError(f"{mapping!r} names no migratable version")
            destination = self.versions[names.index(mapping.source_version) + 1]
            if mapping.entity not in destination:
                raise MappingConfigurationError(f"{mapping!r} names an entity missing from {destination.version}")

        for source, destination in zip(self.versions, self.versions[1:]):
            policies = self.policies(source.version)
            for entity in destination.entities.values():
                if entity.name not in source:
                    continue
                source_entity = source.entity(entity.name)
                policy = policies.get(entity.name)
                provided = policy.provides if policy else frozenset()

                for name, prop in entity.to_one.items():
                    if prop.optional or name in provided or name in source_entity.to_one:
                        continue
                    raise MappingConfigurationError(
                        f"{source.version} -> {destination.version}: nothing provides "
                        f"{entity.name}.{name}")

                for name, attribute in entity.attributes.items():
                    if not attribute.mandatory or name in source_entity.attributes:
                        continue
                    raise MappingConfigurationError(
                        f"{source.version} -> {destination.version}: no value for "
                        f"{entity.name}.{name}")

        logger.debug("Mapping %s covers %s", self.name, ' -> '.join(names))


class StepImagePolicy(EntityMigrationPolicy):
    """Move a step's legacy image_data into an owned Image at index 0."""

    def create_destination_instance(self, source, manager):
        destination = manager.default_instance(source)
        image_data = source.values.get('image_data')
        if image_data is not None:
            image = manager.insert_new('Image', {'image_data': image_data, 'index': 0})
            image.relationships['step_used_in'] = destination.pk
        return destination


class RecipeOwnerPolicy(EntityMigrationPolicy):
    """Map the mis-named recipes_used_in owner onto recipe_used_in."""
    provides = frozenset({'recipe_used_in'})

    def create_relationships(self, source, destination, manager):
        owner = source.relationships.get('recipes_used_in')
        if isinstance(owner, set):
            # Steps held their owner in a set; there is only ever one
            if len(owner) != 1:
                raise MigrationIntegrityError(
                    f"{source.entity} #{source.pk} belongs to {len(owner)} recipes, expected 1")
            owner = next(iter(owner))
        if owner is None:
            raise MigrationIntegrityError(f"{source.entity} #{source.pk} has no recipe")
        destination.relationships['recipe_used_in'] = manager.destination_pk('Recipe', owner)


V1_MAPPING = MappingModel('v1', MODEL_VERSIONS, [
    EntityMapping('Step', 'v1.1', StepImagePolicy()),
    EntityMapping('IngredientAmount', 'v1.2', RecipeOwnerPolicy()),
    EntityMapping('Step', 'v1.2', RecipeOwnerPolicy()),
])

MAPPINGS = {
    V1_MAPPING.name: V1_MAPPING,
}


def get_mapping(name):
    """Return the named mapping configuration."""
    try:
        return MAPPINGS[name]
    except KeyError:
        raise MappingConfigurationError(f"Unknown mapping: {name!r}") from None
