"""Application factory for the console."""

import logging
from typing import Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException, InternalServerError

from . import services
from .app_logging import setup_logger
from .routes import ui
from .services.util import create_all
from .sessions import Sessions

logger = logging.getLogger(__name__)


def jsonify_exception(error: HTTPException):
    exc_resp = error.get_response()
    description = error.description
    if exc_resp.status_code >= 500:
        logger.error('Internal error: %s', error.description,
                     exc_info=error.__cause__ or error)
        description = 'internal error'
    response = jsonify(reason=description)
    response.status_code = exc_resp.status_code
    return response


def handle_unexpected(error: Exception):
    logger.exception('Unhandled exception: %s', error)
    return jsonify_exception(InternalServerError())


def create_web_app(config: Optional[dict] = None) -> Flask:
    """
    Initialize and configure the console application.

    Parameters
    ----------
    config : dict
        Overrides applied after ``config.py``.

    """
    app = Flask('ciconsole')
    app.config.from_pyfile('config.py')
    if config:
        app.config.update(config)
    setup_logger(app.config.get('LOGLEVEL', 'INFO'))

    services.init_app(app)
    Sessions(app)   # Resolves and saves a session on every request.

    app.register_blueprint(ui.blueprint)
    app.errorhandler(HTTPException)(jsonify_exception)
    app.errorhandler(Exception)(handle_unexpected)

    if app.config['CREATE_DB']:
        with app.app_context():
            create_all()

    return app
