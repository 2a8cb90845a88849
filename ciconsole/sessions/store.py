"""
Cookie-addressed session store.

The store turns a cookie value into a :class:`.Session`, and writes the
session back at the end of the request only if it changed. Reads fail open:
a missing, malformed, unknown, expired or corrupt session yields a fresh one.
The only error that escapes :meth:`SessionStore.resolve` is a
:class:`.SessionStorageError`, since that means storage is down.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional, Tuple

from pytz import UTC

from ..domain import Session, SessionCookie

logger = logging.getLogger(__name__)

DEFAULT_DURATION = 90 * 24 * 60 * 60
"""Ninety days, in seconds."""

EPOCH = datetime.fromtimestamp(0, tz=UTC)


class SessionStore(object):
    """
    Loads, creates, saves and deletes sessions through a storage backend.

    Parameters
    ----------
    backend : object
        Provides ``load(session_id)``, ``upsert(session_id, data, expires_at)``
        and ``delete(session_id)``. See :mod:`.sessions.backends`.
    cookie_name : str
        Name of the cookie that carries the session identifier.
    duration : int
        Lifetime of a new session, in seconds.
    secure : bool
        Whether issued cookies carry the ``Secure`` attribute.

    """

    def __init__(self, backend, cookie_name: str = 'sid',
                 duration: int = DEFAULT_DURATION,
                 secure: bool = True) -> None:
        self.backend = backend
        self.cookie_name = cookie_name
        self.duration = duration
        self.secure = secure

    def resolve(self, cookie_value: Optional[str]) \
            -> Tuple[Session, Optional[SessionCookie]]:
        """
        Get the session named by a cookie, or create a new one.

        Parameters
        ----------
        cookie_value : str or None
            Value of the session cookie on the inbound request.

        Returns
        -------
        :class:`.Session`
        :class:`.SessionCookie` or None
            A cookie to set on the response, if a new session was created.

        Raises
        ------
        :class:`.SessionStorageError`
            If the backend could not be read.

        """
        if not cookie_value:
            return self.create()
        try:
            session_id = uuid.UUID(cookie_value)
        except ValueError:
            logger.debug('Malformed session cookie')
            return self.create()

        record = self.backend.load(session_id)
        if record is None:
            logger.debug('No such session: %s', session_id)
            return self.create()

        data, expires_at = record
        try:
            session = Session.deserialize(session_id, expires_at, data)
        except ValueError as e:
            logger.info('Discarding unreadable session %s: %s',
                        session_id, e)
            return self.create()
        if session.expired:
            logger.debug('Session %s is expired', session_id)
            return self.create()
        return session, None

    def create(self) -> Tuple[Session, SessionCookie]:
        """
        Create a new session, not yet persisted.

        Returns
        -------
        :class:`.Session`
        :class:`.SessionCookie`
            Carries the new session identifier back to the browser.

        """
        expires_at = datetime.now(tz=UTC) + timedelta(seconds=self.duration)
        session = Session(uuid.uuid4(), expires_at)
        cookie = SessionCookie(name=self.cookie_name,
                               value=str(session.session_id),
                               expires=expires_at,
                               secure=self.secure)
        return session, cookie

    def save(self, session: Session) -> bool:
        """
        Persist a session if it changed since it was loaded or created.

        Safe to call at the end of every request. A deleted session is never
        written back.

        Returns
        -------
        bool
            ``True`` if a write was made.

        """
        if session.deleted or not session.changed:
            return False
        data = session.serialize()
        self.backend.upsert(session.session_id, data, session.expires_at)
        session.snapshot = data
        return True

    def delete(self, session: Session) -> SessionCookie:
        """
        Remove a session from storage.

        Returns
        -------
        :class:`.SessionCookie`
            Expires the session cookie immediately.

        Raises
        ------
        :class:`.SessionStorageError`
            If the backend could not be written.

        """
        self.backend.delete(session.session_id)
        session.deleted = True
        return self.expired_cookie()

    def expired_cookie(self) -> SessionCookie:
        """Make a cookie that clears the session cookie in the browser."""
        return SessionCookie(name=self.cookie_name, value='', expires=EPOCH,
                             max_age=0, secure=self.secure)
