import pytest

from unittest import mock

from ciconsole.factory import create_web_app
from ciconsole.services import util
from ciconsole.services.github import GitHub


@pytest.fixture()
def app():

    app = create_web_app({
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'REGISTRY_DATABASE_URI': 'sqlite:///:memory:',
        'SESSION_BACKEND': 'sql',
        'CONSOLE_SESSION_COOKIE_SECURE': False,
        'CREATE_DB': True,
        'LOGLEVEL': 'WARNING',
    })
    app.extensions['ciconsole.github'] = mock.MagicMock(spec=GitHub)

    yield app

    with app.app_context():
        util.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def request_context(app):
    yield app.test_request_context()
