import pytest

from store.errors import MappingConfigurationError
from store.mapping import (
    EntityMapping,
    MappingModel,
    RecipeOwnerPolicy,
    StepImagePolicy,
    V1_MAPPING,
    get_mapping,
)
from store.versions import MODEL_VERSIONS, V1_1, V1_2, V1_3


def test_v1_mapping_is_valid():
    V1_MAPPING.validate()
    assert get_mapping('v1') is V1_MAPPING


def test_unknown_mapping():
    with pytest.raises(MappingConfigurationError):
        get_mapping('v2')


def test_hops_cover_every_gap():
    assert V1_MAPPING.hops('v1.1', 'v1.3') == [(V1_1, V1_2), (V1_2, V1_3)]
    assert V1_MAPPING.hops('v1.2', 'v1.3') == [(V1_2, V1_3)]


def test_hops_reject_backwards_and_unknown():
    with pytest.raises(MappingConfigurationError):
        V1_MAPPING.hops('v1.3', 'v1.1')
    with pytest.raises(MappingConfigurationError):
        V1_MAPPING.hops('v0.9', 'v1.3')


def test_policies_selected_by_source_version():
    assert set(V1_MAPPING.policies('v1.1')) == {'Step'}
    assert set(V1_MAPPING.policies('v1.2')) == {'IngredientAmount', 'Step'}
    assert V1_MAPPING.policies('v1.3') == {}


def test_missing_owner_rule_detected_at_startup():
    mapping = MappingModel('partial', MODEL_VERSIONS, [
        EntityMapping('Step', 'v1.1', StepImagePolicy()),
        EntityMapping('Step', 'v1.2', RecipeOwnerPolicy()),
    ])
    with pytest.raises(MappingConfigurationError) as excinfo:
        mapping.validate()
    assert 'IngredientAmount.recipe_used_in' in str(excinfo.value)


def test_rule_for_current_version_rejected():
    mapping = MappingModel('late', MODEL_VERSIONS, list(V1_MAPPING.entity_mappings) + [
        EntityMapping('Step', 'v1.3', RecipeOwnerPolicy()),
    ])
    with pytest.raises(MappingConfigurationError):
        mapping.validate()


def test_rule_for_unknown_entity_rejected():
    mapping = MappingModel('typo', MODEL_VERSIONS, list(V1_MAPPING.entity_mappings) + [
        EntityMapping('Stepp', 'v1.2', RecipeOwnerPolicy()),
    ])
    with pytest.raises(MappingConfigurationError):
        mapping.validate()


def test_mapping_looks_up_models_by_version():
    assert V1_MAPPING.model('v1.2') is V1_2
    with pytest.raises(MappingConfigurationError):
        V1_MAPPING.model('v7')
