"""
Reconciles what GitHub says about a user with what the registry knows.

Three sources are merged into the list of :class:`.Resource` that the user
sees in the console:

1. the user's identity and active organization memberships, from GitHub;
2. the registry's installations on those accounts;
3. the installations that the user has enabled, from the account store.

The state of each resource is derived on every read. Nothing here writes
during reconciliation, so a failed read can simply be retried.

Enabling and disabling touch two records, the user's and the registry's.
They are not updated atomically; if the second write fails, the next
reconciliation shows whatever was committed.
"""

import logging
from typing import Iterable, List

from . import domain
from .domain import Resource, ResourceKind, ResourceState
from .services.exceptions import InstallationNotEnabled

logger = logging.getLogger(__name__)

ORPHAN_NAME = 'Unknown, Installation ID {installation_id}'


def reconcile(identity: domain.Identity,
              memberships: Iterable[domain.Membership],
              installations: Iterable[domain.Installation],
              enabled_ids: Iterable[int]) -> List[Resource]:
    """
    Merge identity, memberships and installations into resources.

    Parameters
    ----------
    identity : :class:`domain.Identity`
        The user's personal GitHub account.
    memberships : iterable
        Items are :class:`domain.Membership`, in the order GitHub gave them.
        Duplicates are kept.
    installations : iterable
        Items are :class:`domain.Installation` from the registry, for the
        accounts above.
    enabled_ids : iterable
        IDs of the installations that the user has enabled.

    Returns
    -------
    list
        The personal account first, then organizations in the order given,
        then one ``Orphaned`` resource for each enabled installation that
        matched none of the accounts above.

    """
    seeds = [Resource(kind=ResourceKind.PERSONAL, name=identity.login,
                      account_id=identity.account_id, can_disable=True)]
    seeds.extend(Resource(kind=ResourceKind.ORGANIZATION, name=m.login,
                          account_id=m.account_id)
                 for m in memberships)

    installations = list(installations)
    # Claimed IDs are removed as the seeds match them.
    unclaimed = list(dict.fromkeys(enabled_ids))
    resources = []
    for resource in seeds:
        for installation in installations:
            if installation.account_id != resource.account_id:
                continue
            state = ResourceState.DISABLED
            if installation.installation_id in unclaimed:
                state = ResourceState.ENABLED
                unclaimed.remove(installation.installation_id)
            resource = resource._replace(
                installation_id=installation.installation_id,
                state=state
            )
        resources.append(resource)

    for installation_id in unclaimed:
        logger.debug('Installation %i is enabled but not visible',
                     installation_id)
        resources.append(Resource(
            kind=ResourceKind.ORPHANED,
            name=ORPHAN_NAME.format(installation_id=installation_id),
            state=ResourceState.ENABLED,
            installation_id=installation_id
        ))
    return resources


def list_resources(user: domain.User, github, registry, users) \
        -> List[Resource]:
    """
    Gather everything for a user from the collaborators, and reconcile it.

    Parameters
    ----------
    user : :class:`domain.User`
    github : :class:`.GitHub`
    registry : :class:`.InstallationRegistry`
    users : :class:`.UserStore`

    Raises
    ------
    :class:`.Unavailable`
        If any collaborator could not be reached. No partial list is
        returned.
    :class:`.IdentityProviderError`
        If GitHub would not answer for the user's token.

    """
    identity = github.get_identity(user.github_token)
    memberships = github.list_active_org_memberships(user.github_token)
    account_ids = [identity.account_id] + [m.account_id for m in memberships]
    installations = registry.list_resources(account_ids)
    enabled_ids = users.list_enabled_installation_ids(user.user_id)
    return reconcile(identity, memberships, installations, enabled_ids)


def enable(user_id: int, installation_id: int, registry, users) -> None:
    """
    Enable an installation for a user.

    Enabling twice is not an error.
    """
    # TODO: enforce the plan's installation quota here once billing is wired.
    users.record_enabled(user_id, installation_id)
    registry.set_enabled(installation_id, True)
    logger.info('User %i enabled installation %i', user_id, installation_id)


def disable(user_id: int, installation_id: int, registry, users) -> None:
    """
    Disable an installation that the user enabled.

    Raises
    ------
    :class:`.InstallationNotEnabled`
        If this user did not enable the installation. Nothing is written.

    """
    if not users.is_enabled_by_user(user_id, installation_id):
        logger.warning('User %i may not disable installation %i',
                       user_id, installation_id)
        raise InstallationNotEnabled(
            f'Installation {installation_id} not enabled by user {user_id}'
        )
    users.record_disabled(user_id, installation_id)
    registry.set_enabled(installation_id, False)
    logger.info('User %i disabled installation %i', user_id, installation_id)
