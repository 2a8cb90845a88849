"""Defines the core concepts of the console: sessions, users, resources."""

import json
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, List, NamedTuple, Optional

from pytz import UTC


class Session(object):
    """
    A browser's server-side authentication and CSRF state.

    The session is addressed by :attr:`session_id`, which is the only value
    that leaves the server (as the session cookie). :attr:`user_id` and
    :attr:`oauth_state` are the mutable fields; they are what gets persisted.

    The session keeps the bytes it was loaded (or created) with in
    :attr:`snapshot`, so that the store can tell whether anything changed
    during the request.
    """

    def __init__(self, session_id: uuid.UUID, expires_at: datetime,
                 user_id: int = 0, oauth_state: Optional[uuid.UUID] = None,
                 snapshot: Optional[bytes] = None) -> None:
        self._session_id = session_id
        self._expires_at = expires_at
        self.user_id = user_id
        self.oauth_state = oauth_state
        self.deleted = False
        self.snapshot = snapshot if snapshot is not None else self.serialize()

    @property
    def session_id(self) -> uuid.UUID:
        """Unique, unguessable identifier for the session."""
        return self._session_id

    @property
    def expires_at(self) -> datetime:
        """When the session expires. Set once, at creation."""
        return self._expires_at

    @property
    def logged_in(self) -> bool:
        """Whether a user is attached to this session."""
        return self.user_id != 0

    @property
    def changed(self) -> bool:
        """Whether the persistent fields differ from :attr:`snapshot`."""
        return self.serialize() != self.snapshot

    def serialize(self) -> bytes:
        """Serialize the mutable fields of the session."""
        state = str(self.oauth_state) if self.oauth_state else None
        return json.dumps({'user_id': self.user_id, 'oauth_state': state},
                          sort_keys=True, separators=(',', ':')) \
            .encode('utf-8')

    @classmethod
    def deserialize(cls, session_id: uuid.UUID, expires_at: datetime,
                    data: bytes) -> 'Session':
        """
        Load a :class:`.Session` from its serialized form.

        Raises
        ------
        ValueError
            If ``data`` is not a serialized session.

        """
        try:
            payload = json.loads(data)
        except (TypeError, UnicodeDecodeError, RecursionError) as e:
            raise ValueError('Session data is not JSON') from e
        if not isinstance(payload, dict):
            raise ValueError('Session data is not an object')

        user_id = payload.get('user_id', 0)
        if type(user_id) is not int:
            raise ValueError(f'Invalid user_id: {user_id!r}')
        state = payload.get('oauth_state')
        if state is not None and not isinstance(state, str):
            raise ValueError(f'Invalid oauth_state: {state!r}')
        oauth_state = uuid.UUID(state) if state else None
        return cls(session_id, expires_at, user_id=user_id,
                   oauth_state=oauth_state, snapshot=data)

    @property
    def expired(self) -> bool:
        """Expired if the current time is later than :attr:`.expires_at`."""
        return datetime.now(tz=UTC) >= self.expires_at

    def __repr__(self) -> str:
        return f'<Session {self.session_id} user_id={self.user_id}>'


class SessionCookie(NamedTuple):
    """A cookie that the response must carry back to the browser."""

    name: str
    value: str
    expires: datetime
    path: str = '/'
    max_age: Optional[int] = None
    secure: bool = True
    httponly: bool = True


class User(NamedTuple):
    """A console user, as recorded in the account store."""

    user_id: int
    """Our identifier for the user."""

    email: str
    """The user's primary and verified e-mail address on GitHub."""

    github_id: int
    """The user's account ID on GitHub."""

    github_token: Optional[dict] = None
    """Stored OAuth2 token, or ``None`` if the user has none on file."""

    stripe_customer_id: Optional[str] = None
    """Billing customer reference, if the user has ever subscribed."""


class Identity(NamedTuple):
    """The caller's personal account on GitHub."""

    account_id: int
    login: str


class Membership(NamedTuple):
    """An organization the caller is an active member of."""

    account_id: int
    login: str


class Installation(NamedTuple):
    """The registry's record that the app is installed on an account."""

    installation_id: int
    account_id: int


class ResourceKind(Enum):
    """What sort of account a :class:`.Resource` stands for."""

    PERSONAL = 'Personal'
    ORGANIZATION = 'Organization'
    ORPHANED = 'Orphaned'


class ResourceState(Enum):
    """Lifecycle state of a :class:`.Resource`, derived at read time."""

    NEW = 'New'
    """We have never seen an installation for this account."""

    DISABLED = 'Disabled'
    """Installed, but not enabled by this user."""

    ENABLED = 'Enabled'
    """Installed and enabled by this user."""


class Resource(NamedTuple):
    """An account as the user sees it in the console."""

    kind: ResourceKind
    name: str
    state: ResourceState = ResourceState.NEW

    account_id: Optional[int] = None
    """GitHub account ID. Orphaned resources have none."""

    installation_id: Optional[int] = None
    """Registry installation ID, or ``None`` if never observed."""

    can_disable: bool = False
    """Whether the user is allowed to disable the installation."""


def to_dict(obj: tuple) -> dict:
    """
    Generate a dict representation of a NamedTuple instance.

    Enum members are cast to their values, and datetimes to ISO-8601, so that
    the result can be passed straight to :func:`flask.jsonify`.
    """
    if not hasattr(obj, '_asdict'):
        return {}

    def _cast(value: Any) -> Any:
        if hasattr(value, '_asdict'):
            return to_dict(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, list):
            return [_cast(o) for o in value]
        return value

    return {key: _cast(value) for key, value in obj._asdict().items()}


def resources_to_dicts(resources: List[Resource]) -> List[dict]:
    """Cast a list of :class:`.Resource` for the JSON response."""
    return [to_dict(resource) for resource in resources]
