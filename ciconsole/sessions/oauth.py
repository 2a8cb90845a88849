"""
Single-use CSRF token for the OAuth login round-trip.

A session is either idle (no token) or pending (one token). :func:`begin`
moves it to pending. :func:`validate` always moves it back to idle, whether
or not the callback's ``state`` matched, so a token can be used once at most.
"""

import logging
import uuid
from typing import Optional

from ..domain import Session
from .exceptions import InvalidOAuthState

logger = logging.getLogger(__name__)


def begin(session: Session) -> str:
    """Issue a fresh token on the session, to use as the ``state`` param."""
    session.oauth_state = uuid.uuid4()
    return str(session.oauth_state)


def validate(session: Session, state: Optional[str]) -> None:
    """
    Check the ``state`` returned by the identity provider.

    Raises
    ------
    :class:`.InvalidOAuthState`
        If the session has no pending login, or ``state`` does not match.

    """
    expected = session.oauth_state
    session.oauth_state = None
    if expected is None:
        logger.info('OAuth callback on session %s without a pending login',
                    session.session_id)
        raise InvalidOAuthState('No login in progress')
    if state != str(expected):
        logger.info('OAuth state mismatch on session %s', session.session_id)
        raise InvalidOAuthState('State does not match')
