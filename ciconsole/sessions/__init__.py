"""
Attaches a console session to every request.

Intended for use in a Flask application factory, for example:

.. code-block:: python

   from flask import Flask
   from ciconsole.sessions import Sessions


   def create_web_app() -> Flask:
      app = Flask('ciconsole')
      app.config.from_pyfile('config.py')
      Sessions(app)
      return app

Handlers get the session with :func:`current_session`. The session is
resolved before the handler runs and saved after it returns, even if it
raised.
"""

import logging
from typing import Optional

from flask import Flask, Response, current_app, g, request
from werkzeug.exceptions import InternalServerError

from ..domain import Session, SessionCookie
from ..services.models import db
from . import backends
from .exceptions import SessionStorageError, InvalidOAuthState
from .store import SessionStore

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'ciconsole.sessions'


class Sessions(object):
    """Flask extension that loads and saves a :class:`.Session` per request."""

    def __init__(self, app: Optional[Flask] = None, backend=None) -> None:
        """
        Initialize ``app`` with session hooks.

        Parameters
        ----------
        app : :class:`Flask`
        backend : object
            Session storage. If not given, one is picked from
            ``SESSION_BACKEND``.

        """
        self.store: Optional[SessionStore] = None
        if app is not None:
            self.init_app(app, backend)

    def init_app(self, app: Flask, backend=None) -> None:
        """
        Build the session store and register the request hooks.

        Parameters
        ----------
        app : :class:`Flask`
        backend : object

        """
        if backend is None:
            backend = backends.get_backend(app, db)
        self.store = SessionStore(
            backend,
            cookie_name=app.config.get('CONSOLE_SESSION_COOKIE_NAME', 'sid'),
            duration=int(app.config.get('CONSOLE_SESSION_DURATION',
                                        90 * 24 * 60 * 60)),
            secure=bool(app.config.get('CONSOLE_SESSION_COOKIE_SECURE', True))
        )
        app.extensions[EXTENSION_KEY] = self
        app.before_request(self.load_session)
        app.after_request(self.finalize_response)
        app.teardown_request(self.save_session)

    def load_session(self) -> None:
        """
        Resolve the session cookie, and attach the session to the request.

        Only a storage failure stops the request; anything wrong with the
        cookie itself just gets a new session.
        """
        cookie_value = request.cookies.get(self.store.cookie_name)
        try:
            session, cookie = self.store.resolve(cookie_value)
        except SessionStorageError as e:
            logger.exception('Could not load session')
            raise InternalServerError('Could not load session') from e
        g.user_session = session
        g.session_cookie = cookie

    def finalize_response(self, response: Response) -> Response:
        """Issue a pending session cookie and apply security headers."""
        cookie: Optional[SessionCookie] = g.pop('session_cookie', None)
        session: Optional[Session] = g.get('user_session')
        if cookie is not None and session is not None \
                and not session.deleted \
                and not _has_cookie(response, cookie.name):
            set_cookie(response, cookie)

        response.headers['X-Content-Type-Options'] = 'nosniff'
        # Prevent UI redress attacks.
        response.headers['Content-Security-Policy'] = "frame-ancestors 'none'"
        response.headers['X-Frame-Options'] = 'DENY'
        return response

    def save_session(self, exception: Optional[BaseException]) -> None:
        """Persist the session if it changed. Failures are only logged."""
        session: Optional[Session] = g.pop('user_session', None)
        if session is None:
            return
        try:
            if self.store.save(session):
                logger.debug('Saved session %s', session.session_id)
        except SessionStorageError:
            logger.exception('Could not save session %s', session.session_id)


def _has_cookie(response: Response, name: str) -> bool:
    return any(header.startswith(f'{name}=')
               for header in response.headers.getlist('Set-Cookie'))


def set_cookie(response: Response, cookie: SessionCookie) -> None:
    """Set a :class:`.SessionCookie` on a response."""
    logger.debug('Set cookie %s, expires %s', cookie.name, cookie.expires)
    response.set_cookie(cookie.name, cookie.value, path=cookie.path,
                        expires=cookie.expires, max_age=cookie.max_age,
                        secure=cookie.secure, httponly=cookie.httponly)


def current_session() -> Session:
    """Get the :class:`.Session` attached to the current request."""
    return g.user_session


def get_store() -> SessionStore:
    """Get the :class:`.SessionStore` of the current application."""
    return current_app.extensions[EXTENSION_KEY].store


__all__ = ('Sessions', 'SessionStore', 'SessionStorageError',
           'InvalidOAuthState', 'current_session', 'get_store', 'set_cookie')
