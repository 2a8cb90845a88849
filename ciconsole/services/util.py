"""Helpers and Flask application integration."""

import logging
from contextlib import contextmanager
from typing import Generator

from flask import Flask

from .models import db

logger = logging.getLogger(__name__)


@contextmanager
def transaction() -> Generator:
    """Context manager for database transaction."""
    try:
        yield db.session
        # The caller may have explicitly committed already, in order to
        # implement exception handling logic. We only want to commit here if
        # there is anything remaining that is not flushed.
        if db.session.new or db.session.dirty or db.session.deleted:
            db.session.commit()
    except Exception as e:
        logger.error('Commit failed, rolling back: %s', str(e))
        db.session.rollback()
        raise


def init_app(app: Flask) -> None:
    """Register the SQLAlchemy handle with an application."""
    app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)
    binds = dict(app.config.get('SQLALCHEMY_BINDS') or {})
    binds.setdefault('registry',
                     app.config.get('REGISTRY_DATABASE_URI')
                     or app.config['SQLALCHEMY_DATABASE_URI'])
    app.config['SQLALCHEMY_BINDS'] = binds
    db.init_app(app)


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()
