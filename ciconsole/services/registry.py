"""Installation registry: where the app is installed, and whether it runs."""

import logging
from datetime import datetime
from typing import Iterable, List

from flask_sqlalchemy import SQLAlchemy
from pytz import UTC
from sqlalchemy.exc import SQLAlchemyError

from .. import domain
from .exceptions import Unavailable
from .models import DBInstallation
from .util import transaction

logger = logging.getLogger(__name__)


class InstallationRegistry(object):
    """Reads and flips installations through a Flask-SQLAlchemy handle."""

    def __init__(self, db: SQLAlchemy) -> None:
        self.db = db

    def list_resources(self, account_ids: Iterable[int]) \
            -> List[domain.Installation]:
        """
        Get the installations on any of a set of GitHub accounts.

        Parameters
        ----------
        account_ids : iterable
            GitHub account IDs.

        Returns
        -------
        list
            Items are :class:`domain.Installation`, in no particular order.

        Raises
        ------
        :class:`.Unavailable`
            If the registry could not be read.

        """
        account_ids = list(account_ids)
        if not account_ids:
            return []
        try:
            rows = self.db.session.query(DBInstallation.installation_id,
                                         DBInstallation.account_id) \
                .filter(DBInstallation.account_id.in_(account_ids)) \
                .all()
        except SQLAlchemyError as e:
            raise Unavailable(f'Could not list installations: {e}') from e
        return [domain.Installation(installation_id=installation_id,
                                    account_id=account_id)
                for installation_id, account_id in rows]

    def set_enabled(self, installation_id: int, enabled: bool) -> None:
        """
        Start or stop running the app for an installation.

        Setting the current state again is not an error, and neither is an
        unknown installation.
        """
        enabled_at = datetime.now(tz=UTC).replace(tzinfo=None) \
            if enabled else None
        try:
            with transaction() as dbsession:
                updated = dbsession.query(DBInstallation) \
                    .filter(DBInstallation.installation_id == installation_id) \
                    .update({DBInstallation.enabled_at: enabled_at})
                dbsession.commit()
        except SQLAlchemyError as e:
            raise Unavailable(f'Could not update installation: {e}') from e
        if not updated:
            logger.warning('No installation %i in the registry',
                           installation_id)
