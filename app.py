"""
Recipe Book application shell.

Opens (and if needed migrates) the store at launch, then serves the
recipes read-only as JSON. Store maintenance is available as Flask CLI
commands (`flask --app app store-info`, `flask --app app purge-orphans`).
"""

import logging

import click
from flask import Flask, abort, jsonify, request

from config import get_config
from models import ENTITIES, Recipe, db
from services import SEARCH_CATEGORIES, list_recipes, recipe_to_dict, search_recipes
from store.manager import prepare_store, store_version
from store.session import Session


def get_session():
    """Session over Flask-SQLAlchemy's request-scoped db.session."""
    return Session(db.session)


def create_app(config_name=None, **overrides):
    """
    Build the Flask app. Store failures (StoreUnavailable,
    MigrationIntegrityError) propagate: the app cannot run without a store.
    """
    app = Flask(__name__)
    app.config.from_object(get_config(config_name))
    app.config.update(overrides)

    store_path = app.config['STORE_PATH']
    if not store_path:
        raise RuntimeError("STORE_PATH is not configured")

    previous = prepare_store(
        store_path,
        mapping_name=app.config['MAPPING_NAME'],
        temporary_path=app.config.get('TEMPORARY_STORE_PATH'),
    )
    app.logger.info("Store ready at %s (was %s)", store_path, previous or 'new')

    app.config['SQLALCHEMY_DATABASE_URI'] = f'sqlite:///{store_path}'
    db.init_app(app)

    register_routes(app)
    register_commands(app)
    return app


def register_routes(app):

    @app.route('/recipes')
    def recipes_list():
        return jsonify([recipe_to_dict(recipe) for recipe in list_recipes(get_session())])

    @app.route('/recipes/<int:id>')
    def recipe_detail(id):
        recipe = get_session().get(Recipe, id)
        if recipe is None:
            abort(404)
        return jsonify(recipe_to_dict(recipe))

    @app.route('/recipes/search')
    def recipes_search():
        text = request.args.get('q', '')
        category = request.args.get('by', 'name')
        if category not in SEARCH_CATEGORIES:
            return jsonify({'error': f'Unknown search category: {category}'}), 400
        results = search_recipes(get_session(), text, category)
        return jsonify([recipe_to_dict(recipe) for recipe in results])


def register_commands(app):

    @app.cli.command('store-info')
    def store_info():
        """Show the store location, schema version and entity counts."""
        path = app.config['STORE_PATH']
        click.echo(f"Store: {path}")
        click.echo(f"Version: {store_version(path)}")
        session = get_session()
        for entity in ENTITIES:
            click.echo(f"{entity.__name__}: {session.query(entity).count()}")

    @app.cli.command('purge-orphans')
    def purge_orphans():
        """Delete tags and ingredients no recipe uses."""
        session = get_session()
        removed = session.purge_orphans()
        session.save()
        click.echo(f"Removed {removed} orphan(s)")


if __name__ == '__main__':
    app = create_app()
    logging.basicConfig(level=app.config['LOG_LEVEL'])
    app.run(debug=app.config.get('DEBUG', False), use_reloader=False)
