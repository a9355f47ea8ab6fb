import pytest

from meterwatch import create_app
from meterwatch.database import build_engine, init_db, make_session_factory
from meterwatch.services import SqlPersistenceAdapter
from tests.factories import IsolatedConfig


@pytest.fixture
def adapter():
    engine = build_engine('sqlite://')
    init_db(engine)
    yield SqlPersistenceAdapter(make_session_factory(engine))
    engine.dispose()


@pytest.fixture
def app():
    app = create_app(IsolatedConfig)
    yield app
    app.extensions['meterwatch'].engine.stop()


@pytest.fixture
def services(app):
    return app.extensions['meterwatch']


@pytest.fixture
def client(app):
    return app.test_client()
