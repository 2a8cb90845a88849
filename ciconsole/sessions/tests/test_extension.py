"""Tests for the :class:`ciconsole.sessions.Sessions` Flask extension."""

import uuid
from unittest import TestCase, mock

import fakeredis
from flask import Flask, jsonify

from ciconsole.sessions import Sessions, current_session, get_store
from ciconsole.sessions.backends import RedisSessionBackend
from ciconsole.sessions.exceptions import SessionStorageError


def _parse_cookies(cookie_data):
    cookies = {}
    for cdata in cookie_data:
        parts = cdata.split('; ')
        data = parts[0]
        key, value = data[:data.index('=')], data[data.index('=') + 1:]
        extra = {
            part[:part.index('=')]: part[part.index('=') + 1:]
            for part in parts[1:] if '=' in part
        }
        flags = {part: True for part in parts[1:] if '=' not in part}
        cookies[key] = dict(value=value, **extra, **flags)
    return cookies


def make_app(backend) -> Flask:
    app = Flask('test')
    app.config['CONSOLE_SESSION_COOKIE_NAME'] = 'sid'
    Sessions(app, backend=backend)

    @app.route('/whoami')
    def whoami():
        return jsonify(user_id=current_session().user_id)

    @app.route('/login/<int:user_id>')
    def login(user_id):
        current_session().user_id = user_id
        return jsonify(ok=True)

    @app.route('/login-then-fail')
    def login_then_fail():
        current_session().user_id = 99
        raise RuntimeError('handler blew up')

    return app


class TestSessionsExtension(TestCase):
    """Sessions are resolved before, and saved after, every request."""

    def setUp(self):
        self.backend = RedisSessionBackend(fakeredis.FakeStrictRedis())
        self.app = make_app(self.backend)
        self.client = self.app.test_client()

    def test_new_visitor(self):
        """A visitor without a cookie gets one, but nothing is stored."""
        response = self.client.get('/whoami')
        self.assertEqual(response.json, {'user_id': 0})
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        self.assertIn('sid', cookies)
        self.assertEqual(cookies['sid']['Path'], '/')
        self.assertTrue(cookies['sid'].get('Secure'))
        self.assertTrue(cookies['sid'].get('HttpOnly'))
        session_id = uuid.UUID(cookies['sid']['value'])
        self.assertIsNone(self.backend.load(session_id))

    def test_session_persists(self):
        """A change made by a handler is there on the next request."""
        response = self.client.get('/login/5')
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        self.client.set_cookie('sid', cookies['sid']['value'])

        response = self.client.get('/whoami')
        self.assertEqual(response.json, {'user_id': 5})
        self.assertEqual(response.headers.getlist('Set-Cookie'), [],
                         'No new cookie for a resolved session')

    def test_saved_on_error(self):
        """The session is saved even if the handler raised."""
        response = self.client.get('/login-then-fail')
        self.assertEqual(response.status_code, 500)
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        session_id = uuid.UUID(cookies['sid']['value'])
        self.assertIsNotNone(self.backend.load(session_id))

    def test_bad_cookie(self):
        """A garbage cookie gets a fresh session, not an error."""
        self.client.set_cookie('sid', 'garbage')
        response = self.client.get('/whoami')
        self.assertEqual(response.status_code, 200)
        cookies = _parse_cookies(response.headers.getlist('Set-Cookie'))
        self.assertNotEqual(cookies['sid']['value'], 'garbage')

    def test_security_headers(self):
        """Every response carries the security headers."""
        for path in ['/whoami', '/nowhere']:
            response = self.client.get(path)
            self.assertEqual(response.headers['X-Content-Type-Options'],
                             'nosniff')
            self.assertEqual(response.headers['X-Frame-Options'], 'DENY')
            self.assertEqual(response.headers['Content-Security-Policy'],
                             "frame-ancestors 'none'")

    def test_get_store(self):
        """The store is registered on the app."""
        with self.app.app_context():
            self.assertIs(get_store().backend, self.backend)


class TestStorageFailures(TestCase):
    """Storage failures stop the request on load, and are logged on save."""

    def test_load_failure(self):
        """If storage is down, the request fails with a 500."""
        backend = mock.MagicMock()
        backend.load.side_effect = SessionStorageError('down')
        client = make_app(backend).test_client()
        client.set_cookie('sid', str(uuid.uuid4()))
        response = client.get('/whoami')
        self.assertEqual(response.status_code, 500)

    def test_save_failure(self):
        """If saving fails, the response still goes out."""
        backend = mock.MagicMock()
        backend.upsert.side_effect = SessionStorageError('down')
        client = make_app(backend).test_client()
        with self.assertLogs('ciconsole.sessions', level='ERROR'):
            response = client.get('/login/5')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(backend.upsert.call_count, 1)
