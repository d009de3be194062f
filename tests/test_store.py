import os
import sqlite3

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from models import Image, Ingredient, IngredientAmount, Recipe, Step, Tag
from store.errors import SaveFailed, StoreUnavailable, ValidationError
from store.manager import open_store, prepare_store, store_version
from store.versions import CURRENT_MODEL


def _omelette(session):
    eggs = session.find_or_create(Ingredient, 'Eggs')
    recipe = Recipe(name='Omelette')
    recipe.steps.add(Step(number=0, summary='Crack eggs'))
    recipe.ingredient_amounts.add(IngredientAmount(amount='3', number=0, ingredient=eggs))
    session.insert(recipe)
    return recipe


def test_open_creates_stamped_store(store_path):
    assert prepare_store(store_path) is None
    assert os.path.exists(store_path)
    assert store_version(store_path) == CURRENT_MODEL.version


def test_open_current_store_does_not_migrate(store_path):
    prepare_store(store_path)
    assert prepare_store(store_path) == CURRENT_MODEL.version
    assert not os.path.exists(os.path.join(os.path.dirname(store_path), 'TemporaryRecipeBook.sqlite'))


def test_omelette_end_to_end(session, reopen):
    recipe = Recipe(name='Omelette')
    recipe.steps.add(Step(number=0, summary='Crack eggs'))
    session.insert(recipe)
    session.save()
    session.close()

    recipes = reopen().fetch_all(Recipe)
    assert len(recipes) == 1
    assert recipes[0].name == 'Omelette'
    assert len(recipes[0].steps) == 1
    assert next(iter(recipes[0].steps)).summary == 'Crack eggs'


def test_save_round_trip_keeps_attributes_and_relationships(session, reopen):
    recipe = _omelette(session)
    recipe.tags.add(session.find_or_create(Tag, 'Breakfast'))
    recipe.images.add(Image(image_data=b'\xff\xd8jpeg', index=0))
    step = next(iter(recipe.steps))
    step.detail = 'Into a bowl'
    step.images.add(Image(image_data=b'\xff\xd8step', index=0))
    session.save()
    session.close()

    loaded = reopen().fetch(Recipe, 'name', 'Omelette')[0]
    assert {tag.name for tag in loaded.tags} == {'Breakfast'}
    assert [(image.index, image.image_data) for image in loaded.images] == [(0, b'\xff\xd8jpeg')]
    loaded_step = next(iter(loaded.steps))
    assert (loaded_step.number, loaded_step.summary, loaded_step.detail) == (0, 'Crack eggs', 'Into a bowl')
    assert [image.image_data for image in loaded_step.images] == [b'\xff\xd8step']
    amount = next(iter(loaded.ingredient_amounts))
    assert (amount.amount, amount.number, amount.ingredient.name) == ('3', 0, 'Eggs')


def test_find_or_create_returns_same_instance(session):
    first = session.find_or_create(Tag, 'Eggs')
    second = session.find_or_create(Tag, 'Eggs')
    assert first is second
    assert first is session.find_or_create(Tag, 'Eggs')

    ingredient = session.find_or_create(Ingredient, 'Eggs')
    assert ingredient is session.find_or_create(Ingredient, 'Eggs')

    # Tags and ingredients are attached, so keep them alive through the save
    recipe = Recipe(name='Omelette', tags={first})
    recipe.ingredient_amounts.add(IngredientAmount(amount='2', number=0, ingredient=ingredient))
    session.insert(recipe)
    session.save()
    assert session.find_or_create(Tag, 'Eggs') is first
    assert len(session.fetch_all(Tag)) == 1
    assert len(session.fetch_all(Ingredient)) == 1


def test_find_or_create_rejects_empty_name(session):
    with pytest.raises(ValidationError):
        session.find_or_create(Ingredient, '')


def test_fetch_by_field(session):
    session.insert(Recipe(name='Toast'))
    session.insert(Recipe(name='Soup'))
    session.save()
    assert [recipe.name for recipe in session.fetch(Recipe, 'name', 'Soup')] == ['Soup']
    assert session.fetch(Recipe, 'name', 'Cake') == []
    assert [recipe.name for recipe in session.fetch_all(Recipe, order_by='name')] == ['Soup', 'Toast']


def test_fetch_unknown_field(session):
    with pytest.raises(ValueError):
        session.fetch(Recipe, 'colour', 'red')


def test_fetch_by_collection_membership(session):
    dessert = session.find_or_create(Tag, 'Dessert')
    cake = Recipe(name='Cake', tags={dessert})
    session.insert(cake)
    session.insert(Recipe(name='Toast'))
    session.save()
    assert session.fetch(Recipe, 'tags', dessert) == [cake]
    assert session.fetch(Tag, 'recipes', cake) == [dessert]


def test_duplicate_ingredient_numbers_rejected(session):
    recipe = _omelette(session)
    milk = session.find_or_create(Ingredient, 'Milk')
    recipe.ingredient_amounts.add(IngredientAmount(amount='50ml', number=0, ingredient=milk))
    with pytest.raises(ValidationError):
        session.save()

    next(amount for amount in recipe.ingredient_amounts if amount.ingredient is milk).number = 1
    session.save()
    assert sorted(amount.number for amount in recipe.ingredient_amounts) == [0, 1]


def test_duplicate_step_numbers_rejected(session):
    recipe = _omelette(session)
    session.save()
    recipe.steps.add(Step(number=0, summary='Whisk'))
    with pytest.raises(ValidationError):
        session.save()


def test_duplicate_image_indexes_rejected(session):
    recipe = Recipe(name='Cake')
    recipe.images.add(Image(image_data=b'one', index=0))
    recipe.images.add(Image(image_data=b'two', index=0))
    session.insert(recipe)
    with pytest.raises(ValidationError):
        session.save()


def test_same_number_under_different_owners_allowed(session):
    recipe = _omelette(session)
    step = next(iter(recipe.steps))
    recipe.images.add(Image(image_data=b'cover', index=0))
    step.images.add(Image(image_data=b'step', index=0))
    session.save()
    assert len(session.fetch_all(Image)) == 2


def test_delete_recipe_cascades_owned_and_reclaims_last_tag(session, reopen):
    omelette = _omelette(session)
    next(iter(omelette.steps)).images.add(Image(image_data=b'step', index=0))
    omelette.images.add(Image(image_data=b'recipe', index=0))
    breakfast = session.find_or_create(Tag, 'Breakfast')
    quick = session.find_or_create(Tag, 'Quick')
    omelette.tags.update({breakfast, quick})

    frittata = Recipe(name='Frittata', tags={quick})
    frittata.ingredient_amounts.add(
        IngredientAmount(amount='6', number=0, ingredient=session.find_or_create(Ingredient, 'Eggs')))
    session.insert(frittata)
    session.save()

    session.delete(omelette)
    session.save()
    session.close()

    store = reopen()
    assert [recipe.name for recipe in store.fetch_all(Recipe)] == ['Frittata']
    assert store.fetch_all(Step) == []
    assert len(store.fetch_all(IngredientAmount)) == 1
    assert store.fetch_all(Image) == []
    assert [tag.name for tag in store.fetch_all(Tag)] == ['Quick']
    assert [ingredient.name for ingredient in store.fetch_all(Ingredient)] == ['Eggs']


def test_delete_last_recipe_reclaims_ingredient(session):
    recipe = _omelette(session)
    session.save()
    session.delete(recipe)
    session.save()
    assert session.fetch_all(Ingredient) == []


def test_delete_referenced_tag_rejected(session):
    tag = session.find_or_create(Tag, 'Dinner')
    session.insert(Recipe(name='Stew', tags={tag}))
    session.save()
    with pytest.raises(ValidationError):
        session.delete(tag)


def test_delete_pending_object_expunges(session):
    recipe = Recipe(name='Draft')
    session.insert(recipe)
    session.delete(recipe)
    session.save()
    assert session.fetch_all(Recipe) == []


def test_purge_orphans_counts(session):
    session.find_or_create(Tag, 'Unused')
    session.find_or_create(Ingredient, 'Saffron')
    assert session.purge_orphans() == 2
    session.save()
    assert session.fetch_all(Tag) == []


def test_failed_save_leaves_store_unchanged(session, reopen):
    session.insert(Recipe(name='Toast'))
    session.save()

    _omelette(session)

    def fail(mapper, connection, target):
        raise OperationalError('INSERT INTO step', {}, Exception('disk I/O error'))

    event.listen(Step, 'after_insert', fail)
    try:
        with pytest.raises(SaveFailed):
            session.save()
    finally:
        event.remove(Step, 'after_insert', fail)

    assert [recipe.name for recipe in session.fetch_all(Recipe)] == ['Toast']
    session.close()

    store = reopen()
    assert [recipe.name for recipe in store.fetch_all(Recipe)] == ['Toast']
    assert store.fetch_all(Step) == []
    assert store.fetch_all(Ingredient) == []


def test_save_failure_can_be_retried(session):
    session.insert(Step(number=0))  # no owning recipe
    with pytest.raises(SaveFailed):
        session.save()
    session.insert(Recipe(name='Retry'))
    session.save()
    assert [recipe.name for recipe in session.fetch_all(Recipe)] == ['Retry']


def test_unstamped_store_unavailable(store_path):
    connection = sqlite3.connect(store_path)
    connection.execute('CREATE TABLE notes (id INTEGER PRIMARY KEY)')
    connection.commit()
    connection.close()
    with pytest.raises(StoreUnavailable):
        open_store(store_path)


def test_empty_file_becomes_new_store(store_path):
    open(store_path, 'wb').close()
    assert prepare_store(store_path) is None
    assert store_version(store_path) == CURRENT_MODEL.version


def test_unknown_version_unavailable(store_path):
    prepare_store(store_path)
    connection = sqlite3.connect(store_path)
    connection.execute("UPDATE store_metadata SET value = 'v9.0' WHERE key = 'version'")
    connection.commit()
    connection.close()
    with pytest.raises(StoreUnavailable):
        open_store(store_path)
    assert store_version(store_path) == 'v9.0'


def test_corrupt_file_unavailable(store_path):
    with open(store_path, 'wb') as f:
        f.write(b'this is not a database' * 100)
    with pytest.raises(StoreUnavailable):
        open_store(store_path)
