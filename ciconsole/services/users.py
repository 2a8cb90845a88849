"""
Account store: console users and the installations each has enabled.

Users are keyed by our own integer ID, and found on login by their GitHub
account ID. The installations a user has enabled are recorded here, apart
from the registry; see :mod:`.installations` for how the two are reconciled.
"""

import json
import logging
from typing import List, Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError

from .. import domain
from .exceptions import Unavailable
from .models import DBUser, DBUserInstallation
from .util import transaction

logger = logging.getLogger(__name__)


class UserStore(object):
    """Reads and writes users through a Flask-SQLAlchemy handle."""

    def __init__(self, db: SQLAlchemy) -> None:
        self.db = db

    def get_user(self, user_id: int) -> Optional[domain.User]:
        """
        Load a user by our ID.

        Returns
        -------
        :class:`domain.User` or None
            ``None`` if there is no such user.

        Raises
        ------
        :class:`.Unavailable`
            If the database could not be read.

        """
        try:
            db_user = self.db.session.get(DBUser, user_id)
        except SQLAlchemyError as e:
            raise Unavailable(f'Could not load user: {e}') from e
        if db_user is None:
            return None
        return _to_domain(db_user)

    def identity_login(self, github_id: int, email: str,
                       github_token: dict) -> int:
        """
        Create or update the user for a GitHub account.

        Parameters
        ----------
        github_id : int
            The user's account ID on GitHub.
        email : str
            Primary, verified e-mail address on GitHub.
        github_token : dict
            OAuth2 token from the code exchange.

        Returns
        -------
        int
            Our ID for the user.

        """
        try:
            with transaction() as dbsession:
                db_user = dbsession.query(DBUser) \
                    .filter(DBUser.github_id == github_id) \
                    .first()
                if db_user is None:
                    db_user = DBUser(github_id=github_id)
                    logger.info('New user for GitHub account %i', github_id)
                db_user.email = email
                db_user.github_token = json.dumps(github_token)
                dbsession.add(db_user)
        except SQLAlchemyError as e:
            raise Unavailable(f'Could not record login: {e}') from e
        return db_user.id

    def list_enabled_installation_ids(self, user_id: int) -> List[int]:
        """Get the IDs of the installations a user has enabled."""
        try:
            rows = self.db.session.query(DBUserInstallation.installation_id) \
                .filter(DBUserInstallation.user_id == user_id) \
                .all()
        except SQLAlchemyError as e:
            raise Unavailable(f'Could not list installations: {e}') from e
        return [installation_id for installation_id, in rows]

    def record_enabled(self, user_id: int, installation_id: int) -> None:
        """Record that a user enabled an installation. Idempotent."""
        try:
            with transaction() as dbsession:
                existing = dbsession.get(DBUserInstallation,
                                         (user_id, installation_id))
                if existing is None:
                    dbsession.add(DBUserInstallation(
                        user_id=user_id,
                        installation_id=installation_id
                    ))
        except SQLAlchemyError as e:
            raise Unavailable(f'Could not enable installation: {e}') from e

    def record_disabled(self, user_id: int, installation_id: int) -> None:
        """Forget that a user enabled an installation."""
        try:
            with transaction() as dbsession:
                dbsession.query(DBUserInstallation) \
                    .filter(DBUserInstallation.user_id == user_id) \
                    .filter(DBUserInstallation.installation_id
                            == installation_id) \
                    .delete()
                dbsession.commit()
        except SQLAlchemyError as e:
            raise Unavailable(f'Could not disable installation: {e}') from e

    def is_enabled_by_user(self, user_id: int, installation_id: int) -> bool:
        """Whether the user enabled the installation. Errors count as no."""
        try:
            record = self.db.session.get(DBUserInstallation,
                                         (user_id, installation_id))
        except SQLAlchemyError as e:
            logger.error('Could not check installation %i for user %i: %s',
                         installation_id, user_id, e)
            return False
        return record is not None


def _to_domain(db_user: DBUser) -> domain.User:
    token = json.loads(db_user.github_token) if db_user.github_token else None
    return domain.User(
        user_id=db_user.id,
        email=db_user.email,
        github_id=db_user.github_id,
        github_token=token,
        stripe_customer_id=db_user.stripe_customer_id
    )
