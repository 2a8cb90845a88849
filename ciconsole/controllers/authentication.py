"""
Controllers for logging in with GitHub, and logging out.

Login is an OAuth2 round-trip. :func:`login` puts a single-use state token
on the session and sends the user to GitHub; :func:`callback` checks that
token, trades the code for a GitHub token, and attaches the user to the
session.
"""

import logging
from http import HTTPStatus as status

from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest, InternalServerError

from ..domain import Session
from ..services import get_github, get_users
from ..services.exceptions import EmailUnavailable, IdentityProviderError, \
    Unavailable
from ..sessions import get_store, oauth
from ..sessions.exceptions import InvalidOAuthState, SessionStorageError
from . import ResponseData

logger = logging.getLogger(__name__)


def login(session: Session) -> ResponseData:
    """
    Start the OAuth round-trip with GitHub.

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. This should be 307 (Temporary Redirect).
    dict
        Headers to add to the response.

    """
    state = oauth.begin(session)
    url = get_github().authorization_url(state)
    logger.debug('Session %s started login', session.session_id)
    return {}, status.TEMPORARY_REDIRECT, {'Location': url}


def callback(session: Session, params: MultiDict,
             next_page: str) -> ResponseData:
    """
    Finish the OAuth round-trip, and log the user in.

    Parameters
    ----------
    session : :class:`.Session`
    params : MultiDict
        Query parameters from GitHub. Should include ``state`` and ``code``.
    next_page : str
        Page to which the user should be redirected upon login.

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. This should be 307 (Temporary Redirect).
    dict
        Headers to add to the response.

    """
    try:
        oauth.validate(session, params.get('state'))
    except InvalidOAuthState as e:
        raise BadRequest('Invalid OAuth state, try logging in again') from e

    code = params.get('code')
    if not code:
        raise BadRequest('Missing authorization code')

    github = get_github()
    try:
        token = github.exchange_authorization_code(code)
        identity = github.get_identity(token)
        email = github.primary_email(token)
    except EmailUnavailable as e:
        raise BadRequest('Your GitHub account needs a primary, verified'
                         ' e-mail address') from e
    except IdentityProviderError as e:
        logger.info('GitHub refused login: %s', e)
        raise BadRequest('Could not log in with GitHub') from e
    except Unavailable as e:
        raise InternalServerError('Could not reach GitHub') from e

    try:
        user_id = get_users().identity_login(identity.account_id, email,
                                             token)
    except Unavailable as e:
        raise InternalServerError('Could not record login') from e

    session.user_id = user_id
    logger.info('User %i logged in as %s', user_id, identity.login)
    return {}, status.TEMPORARY_REDIRECT, {'Location': next_page}


def logout(session: Session, next_page: str = '/') -> ResponseData:
    """
    Log the user out, if logged in, and redirect to the home page.

    Failure to delete the session is logged, not raised.

    Returns
    -------
    dict
        Additional data to add to the response. Carries the cookie that
        clears the session cookie.
    int
        Status code. This should be 302 (Found).
    dict
        Headers to add to the response.

    """
    data: dict = {'cookies': []}
    if session.logged_in:
        store = get_store()
        try:
            store.delete(session)
        except SessionStorageError as e:
            logger.error('Could not delete session %s: %s',
                         session.session_id, e)
        data['cookies'].append(store.expired_cookie())
    return data, status.FOUND, {'Location': next_page}
