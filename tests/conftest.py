"""Shared fixtures."""
import pytest

from agi_factory.app import create_app
from agi_factory.game_engine import GameEngine
from agi_factory.models import db
from agi_factory.persistence import MemoryStorage, PersistenceDispatcher


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def engine(storage):
    engine = GameEngine(persistence=PersistenceDispatcher(storage, storage))
    engine.start()
    return engine
