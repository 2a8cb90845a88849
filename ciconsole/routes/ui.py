"""Provides Flask integration for the console."""

import logging
from http import HTTPStatus as status

from flask import Blueprint, Response, current_app, jsonify, \
    make_response, redirect, request, url_for

from ..controllers import authentication, console
from ..sessions import current_session, set_cookie

logger = logging.getLogger(__name__)
blueprint = Blueprint('ui', __name__, url_prefix='')


def set_cookies(response: Response, data: dict) -> None:
    """
    Update a :class:`.Response` with cookies in controller data.

    Controllers seeking to update cookies must include a 'cookies' key
    in their response data.
    """
    for cookie in data.pop('cookies', None) or []:
        set_cookie(response, cookie)


def _respond(data: dict, code: int, headers: dict) -> Response:
    if code in (status.FOUND, status.SEE_OTHER, status.TEMPORARY_REDIRECT):
        response = make_response(redirect(headers.pop('Location'), code=code))
    else:
        response = make_response(jsonify(data), code)
    set_cookies(response, data)
    response.headers.extend(headers)
    return response


@blueprint.route('/', methods=['GET'])
def home() -> Response:
    """Tell the browser whether it is logged in."""
    return jsonify(logged_in=current_session().logged_in)


@blueprint.route('/gh/login', methods=['GET'])
def login() -> Response:
    """Send the user to GitHub to log in."""
    return _respond(*authentication.login(current_session()))


@blueprint.route('/gh/callback', methods=['GET'])
def callback() -> Response:
    """GitHub sends the user back here after login."""
    next_page = current_app.config['DEFAULT_LOGIN_REDIRECT_URL']
    data, code, headers = authentication.callback(current_session(),
                                                  request.args, next_page)
    return _respond(data, code, headers)


@blueprint.route('/logout', methods=['GET', 'POST'])
def logout() -> Response:
    """Log out, and go home."""
    data, code, headers = authentication.logout(current_session(),
                                                url_for('ui.home'))
    return _respond(data, code, headers)


@blueprint.route('/console/', methods=['GET'])
def console_index() -> Response:
    """List the user's accounts and their installations."""
    data, code, headers = console.index(current_session(),
                                        url_for('ui.login'))
    return _respond(data, code, headers)


@blueprint.route('/console/install-state', methods=['POST'])
def install_state() -> Response:
    """Enable or disable an installation."""
    data, code, headers = console.install_state(current_session(),
                                                request.form,
                                                url_for('ui.login'),
                                                url_for('ui.console_index'))
    return _respond(data, code, headers)
