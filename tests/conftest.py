import pytest
from sqlalchemy import create_engine

from store.manager import create_store, open_store


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / 'RecipeBook.sqlite')


@pytest.fixture
def session(store_path):
    session = open_store(store_path)
    yield session
    session.close()


@pytest.fixture
def reopen(store_path):
    """Open a fresh session on the same store; closed at teardown."""
    opened = []

    def _reopen():
        session = open_store(store_path)
        opened.append(session)
        return session

    yield _reopen
    for session in opened:
        session.close()


@pytest.fixture
def legacy_store():
    """Build a store stamped with an older schema version from raw rows."""

    def _build(path, model, rows):
        create_store(path, model)
        engine = create_engine(f'sqlite:///{path}')
        try:
            with engine.begin() as connection:
                for table_name, records in rows:
                    connection.execute(model.metadata.tables[table_name].insert(), records)
        finally:
            engine.dispose()
        return path

    return _build
