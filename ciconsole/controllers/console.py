"""Controllers for the console: listing and switching installations."""

import logging
from http import HTTPStatus as status
from typing import Optional

from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest, Forbidden, InternalServerError

from .. import installations
from ..domain import Session, User, resources_to_dicts
from ..services import get_github, get_registry, get_users
from ..services.exceptions import IdentityProviderError, \
    InstallationNotEnabled, Unavailable
from . import ResponseData
from .forms import InstallStateForm

logger = logging.getLogger(__name__)


def _get_user(session: Session) -> Optional[User]:
    """Load the session's user, logging out a session whose user is gone."""
    if not session.logged_in:
        return None
    try:
        user = get_users().get_user(session.user_id)
    except Unavailable as e:
        raise InternalServerError('Could not load user') from e
    if user is None:
        logger.warning('Session %s points at missing user %i',
                       session.session_id, session.user_id)
        session.user_id = 0
    return user


def index(session: Session, login_url: str) -> ResponseData:
    """
    List the user's accounts, and whether the app is enabled on each.

    Parameters
    ----------
    session : :class:`.Session`
    login_url : str
        Where to send a user who is not logged in.

    Returns
    -------
    dict
        ``email`` and ``installs``.
    int
        Status code.
    dict
        Headers to add to the response.

    """
    user = _get_user(session)
    if user is None:
        return {}, status.FOUND, {'Location': login_url}

    try:
        resources = installations.list_resources(user, get_github(),
                                                 get_registry(), get_users())
    except (Unavailable, IdentityProviderError) as e:
        raise InternalServerError('Could not list installations') from e

    data = {'email': user.email, 'installs': resources_to_dicts(resources)}
    return data, status.OK, {}


def install_state(session: Session, form_data: MultiDict, login_url: str,
                  next_page: str) -> ResponseData:
    """
    Enable or disable an installation for the user.

    Parameters
    ----------
    session : :class:`.Session`
    form_data : MultiDict
        Should include ``installationID`` and ``state``.
    login_url : str
        Where to send a user who is not logged in.
    next_page : str
        Where to send the user afterwards.

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. This should be 302 (Found) if all goes well.
    dict
        Headers to add to the response.

    """
    user = _get_user(session)
    if user is None:
        return {}, status.FOUND, {'Location': login_url}

    form = InstallStateForm(form_data)
    if not form.validate():
        logger.debug('Invalid install state form: %s', form.errors)
        if form.installation_id.errors:
            raise BadRequest('Invalid installationID')
        raise BadRequest('Invalid state')

    installation_id = form.installation_id.data
    registry, users = get_registry(), get_users()
    try:
        if form.state.data == 'enable':
            installations.enable(user.user_id, installation_id,
                                 registry, users)
        else:
            installations.disable(user.user_id, installation_id,
                                  registry, users)
    except InstallationNotEnabled as e:
        raise Forbidden('Installation not enabled for this user') from e
    except Unavailable as e:
        raise InternalServerError('Could not update installation') from e
    return {}, status.FOUND, {'Location': next_page}
