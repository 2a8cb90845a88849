"""Tests for :mod:`ciconsole.installations`."""

from unittest import TestCase, mock

from hypothesis import given
from hypothesis import strategies as st

from ciconsole import installations
from ciconsole.domain import Identity, Installation, Membership, Resource, \
    ResourceKind, ResourceState, User
from ciconsole.services.exceptions import InstallationNotEnabled, Unavailable

ALICE = Identity(account_id=10, login='alice')
ACME = Membership(account_id=20, login='acme')

account_ids = st.integers(min_value=1, max_value=50)
installation_ids = st.integers(min_value=1, max_value=200)


@st.composite
def scenarios(draw):
    """An identity, memberships, registry contents and an enabled set."""
    identity = Identity(account_id=draw(account_ids), login='me')
    memberships = [Membership(account_id=a, login=f'org{a}')
                   for a in draw(st.lists(account_ids, unique=True))
                   if a != identity.account_id]
    visible = [identity.account_id] + [m.account_id for m in memberships]
    installed = draw(st.lists(st.sampled_from(visible), unique=True))
    ids = draw(st.lists(installation_ids, unique=True,
                        min_size=len(installed), max_size=len(installed)))
    installs = [Installation(installation_id=i, account_id=a)
                for a, i in zip(installed, ids)]
    enabled = draw(st.lists(installation_ids, unique=True))
    return identity, memberships, installs, enabled


class TestReconcile(TestCase):
    """Identity, memberships and the registry merge into resources."""

    def test_enabled_and_new(self):
        """A personal installation the user enabled; an org never seen."""
        resources = installations.reconcile(
            ALICE, [ACME], [Installation(installation_id=1, account_id=10)],
            [1]
        )
        self.assertEqual(resources, [
            Resource(kind=ResourceKind.PERSONAL, name='alice',
                     state=ResourceState.ENABLED, account_id=10,
                     installation_id=1, can_disable=True),
            Resource(kind=ResourceKind.ORGANIZATION, name='acme',
                     state=ResourceState.NEW, account_id=20,
                     installation_id=None, can_disable=False),
        ])

    def test_orphaned(self):
        """An enabled installation on no visible account is orphaned."""
        resources = installations.reconcile(
            ALICE, [ACME], [Installation(installation_id=1, account_id=10)],
            [1, 99]
        )
        self.assertEqual(len(resources), 3)
        self.assertEqual(resources[0].state, ResourceState.ENABLED)
        self.assertEqual(resources[1].state, ResourceState.NEW)
        self.assertEqual(resources[2], Resource(
            kind=ResourceKind.ORPHANED,
            name='Unknown, Installation ID 99',
            state=ResourceState.ENABLED,
            account_id=None,
            installation_id=99
        ))

    def test_disabled(self):
        """An installation the user has not enabled is disabled."""
        resources = installations.reconcile(
            ALICE, [ACME], [Installation(installation_id=2, account_id=20)],
            []
        )
        self.assertEqual(resources[0].state, ResourceState.NEW)
        self.assertEqual(resources[1].state, ResourceState.DISABLED)
        self.assertEqual(resources[1].installation_id, 2)

    def test_no_memberships(self):
        """The personal account is always listed, and can be disabled."""
        resources = installations.reconcile(ALICE, [], [], [])
        self.assertEqual(resources, [
            Resource(kind=ResourceKind.PERSONAL, name='alice',
                     account_id=10, can_disable=True)
        ])

    def test_membership_order(self):
        """Organizations are listed in the order GitHub gave them."""
        memberships = [Membership(account_id=a, login=f'org{a}')
                       for a in [50, 20, 40, 30]]
        resources = installations.reconcile(ALICE, memberships, [], [])
        self.assertEqual([r.account_id for r in resources],
                         [10, 50, 20, 40, 30])

    def test_duplicate_memberships(self):
        """Duplicate memberships are kept; only the first claims the ID."""
        resources = installations.reconcile(
            ALICE, [ACME, ACME],
            [Installation(installation_id=2, account_id=20)], [2]
        )
        self.assertEqual(len(resources), 3)
        self.assertEqual([r.account_id for r in resources], [10, 20, 20])
        self.assertEqual(resources[1].state, ResourceState.ENABLED)
        self.assertEqual(resources[2].state, ResourceState.DISABLED)
        self.assertEqual(resources[2].installation_id, 2)
        self.assertNotIn(ResourceKind.ORPHANED, [r.kind for r in resources])

    @given(scenarios())
    def test_one_orphan_per_unmatched_id(self, scenario):
        """Each enabled ID matching no visible account is one orphan."""
        identity, memberships, installs, enabled = scenario
        resources = installations.reconcile(identity, memberships, installs,
                                            enabled)
        matched = {i.installation_id for i in installs}
        orphans = [r.installation_id for r in resources
                   if r.kind is ResourceKind.ORPHANED]
        self.assertEqual(sorted(orphans),
                         sorted(set(enabled) - matched))
        for resource in resources:
            if resource.kind is ResourceKind.ORPHANED:
                self.assertEqual(resource.state, ResourceState.ENABLED)

    @given(scenarios())
    def test_derived_state(self, scenario):
        """New without a match; Disabled or Enabled by the enabled set."""
        identity, memberships, installs, enabled = scenario
        resources = installations.reconcile(identity, memberships, installs,
                                            enabled)
        by_account = {i.account_id: i.installation_id for i in installs}
        seeded = [r for r in resources if r.kind is not ResourceKind.ORPHANED]
        self.assertEqual(len(seeded), 1 + len(memberships))
        self.assertIs(seeded[0].kind, ResourceKind.PERSONAL)
        for resource in seeded:
            installation_id = by_account.get(resource.account_id)
            if installation_id is None:
                self.assertEqual(resource.state, ResourceState.NEW)
                self.assertIsNone(resource.installation_id)
            elif installation_id in enabled:
                self.assertEqual(resource.state, ResourceState.ENABLED)
            else:
                self.assertEqual(resource.state, ResourceState.DISABLED)

    @given(scenarios())
    def test_does_not_mutate_inputs(self, scenario):
        """The caller's enabled set is left alone."""
        identity, memberships, installs, enabled = scenario
        before = list(enabled)
        installations.reconcile(identity, memberships, installs, enabled)
        self.assertEqual(enabled, before)


class TestListResources(TestCase):
    """Collaborators are queried, and their answers reconciled."""

    def setUp(self):
        self.user = User(user_id=1, email='alice@example.com', github_id=10,
                         github_token={'access_token': 'abc'})
        self.github = mock.MagicMock()
        self.github.get_identity.return_value = ALICE
        self.github.list_active_org_memberships.return_value = [ACME]
        self.registry = mock.MagicMock()
        self.registry.list_resources.return_value = \
            [Installation(installation_id=1, account_id=10)]
        self.users = mock.MagicMock()
        self.users.list_enabled_installation_ids.return_value = [1, 99]

    def test_list_resources(self):
        """The registry is asked about exactly the visible accounts."""
        resources = installations.list_resources(self.user, self.github,
                                                 self.registry, self.users)
        self.registry.list_resources.assert_called_once_with([10, 20])
        self.users.list_enabled_installation_ids.assert_called_once_with(1)
        self.github.get_identity.assert_called_once_with(
            {'access_token': 'abc'}
        )
        self.assertEqual([r.kind for r in resources],
                         [ResourceKind.PERSONAL, ResourceKind.ORGANIZATION,
                          ResourceKind.ORPHANED])

    def test_registry_unavailable(self):
        """A collaborator failure aborts with no partial result."""
        self.registry.list_resources.side_effect = Unavailable('down')
        with self.assertRaises(Unavailable):
            installations.list_resources(self.user, self.github,
                                         self.registry, self.users)

    def test_github_unavailable(self):
        self.github.list_active_org_memberships.side_effect = \
            Unavailable('down')
        with self.assertRaises(Unavailable):
            installations.list_resources(self.user, self.github,
                                         self.registry, self.users)
        self.assertEqual(self.registry.list_resources.call_count, 0)


class TestTransitions(TestCase):
    """Enabling and disabling update the user's record and the registry."""

    def setUp(self):
        self.registry = mock.MagicMock()
        self.users = mock.MagicMock()

    def test_enable(self):
        installations.enable(1, 5, self.registry, self.users)
        self.users.record_enabled.assert_called_once_with(1, 5)
        self.registry.set_enabled.assert_called_once_with(5, True)

    def test_disable(self):
        self.users.is_enabled_by_user.return_value = True
        installations.disable(1, 5, self.registry, self.users)
        self.users.record_disabled.assert_called_once_with(1, 5)
        self.registry.set_enabled.assert_called_once_with(5, False)

    def test_disable_not_enabled_by_user(self):
        """Disabling someone else's installation is refused, untouched."""
        self.users.is_enabled_by_user.return_value = False
        with self.assertRaises(InstallationNotEnabled):
            installations.disable(1, 1, self.registry, self.users)
        self.users.is_enabled_by_user.assert_called_once_with(1, 1)
        self.assertEqual(self.registry.set_enabled.call_count, 0)
        self.assertEqual(self.users.record_disabled.call_count, 0)

    def test_refused_disable_is_logged(self):
        """A refused disable is a warning, unlike a storage error."""
        self.users.is_enabled_by_user.return_value = False
        with self.assertLogs(installations.__name__, level='WARNING') as logs:
            with self.assertRaises(InstallationNotEnabled):
                installations.disable(1, 1, self.registry, self.users)
        self.assertEqual(logs.records[0].levelname, 'WARNING')

    def test_second_step_fails(self):
        """A registry failure after the user record is written propagates."""
        self.registry.set_enabled.side_effect = Unavailable('down')
        with self.assertRaises(Unavailable):
            installations.enable(1, 5, self.registry, self.users)
        self.users.record_enabled.assert_called_once_with(1, 5)

    def test_first_step_fails(self):
        """If the user record cannot be written, the registry is untouched."""
        self.users.record_enabled.side_effect = Unavailable('down')
        with self.assertRaises(Unavailable):
            installations.enable(1, 5, self.registry, self.users)
        self.assertEqual(self.registry.set_enabled.call_count, 0)
