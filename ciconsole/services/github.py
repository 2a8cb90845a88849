"""
GitHub integration: OAuth2 login, identity and organization memberships.

Calls are made with :class:`authlib.integrations.requests_client.OAuth2Session`.
Connection failures and timeouts are raised as :class:`.Unavailable`. API
reads are retried a couple of times first; the code exchange is not, since a
code can only be redeemed once. Anything else GitHub objects to is raised as
:class:`.IdentityProviderError`.
"""

import logging
from typing import Any, List, Mapping, Optional

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.requests_client import OAuth2Session
from retry import retry

from .. import domain
from .exceptions import EmailUnavailable, IdentityProviderError, Unavailable

logger = logging.getLogger(__name__)

SCOPES = 'user:email read:org'


class GitHub(object):
    """Client for the parts of GitHub that the console needs."""

    def __init__(self, client_id: str, client_secret: str,
                 base_url: str = 'https://api.github.com',
                 authorize_url: str = 'https://github.com/login/oauth/authorize',
                 token_url: str = 'https://github.com/login/oauth/access_token',
                 timeout: float = 10.) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip('/')
        self.authorize_url = authorize_url
        self.token_url = token_url
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'GitHub':
        """Make a client from application config."""
        return cls(
            config.get('GITHUB_OAUTH_CLIENT_ID', ''),
            config.get('GITHUB_OAUTH_CLIENT_SECRET', ''),
            base_url=config.get('GITHUB_BASE_URL', 'https://api.github.com'),
            authorize_url=config.get(
                'GITHUB_AUTHORIZE_URL',
                'https://github.com/login/oauth/authorize'
            ),
            token_url=config.get(
                'GITHUB_TOKEN_URL',
                'https://github.com/login/oauth/access_token'
            ),
            timeout=float(config.get('GITHUB_TIMEOUT', 10.))
        )

    def _session(self, token: Optional[dict] = None) -> OAuth2Session:
        return OAuth2Session(self.client_id, self.client_secret,
                             scope=SCOPES, token=token)

    def authorization_url(self, state: str) -> str:
        """Get the URL that asks the user to authorize the console."""
        url, _ = self._session().create_authorization_url(self.authorize_url,
                                                          state=state)
        return url

    def exchange_authorization_code(self, code: str) -> dict:
        """
        Trade the code from the OAuth callback for a token.

        Not retried; a code can be redeemed once only.

        Returns
        -------
        dict
            The OAuth2 token, to be stored with the user.

        """
        try:
            token = self._session().fetch_token(
                self.token_url,
                code=code,
                headers={'Accept': 'application/json'},
                timeout=self.timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise Unavailable(f'Could not reach GitHub: {e}') from e
        except AuthlibBaseError as e:
            raise IdentityProviderError(f'Code exchange failed: {e}') from e
        return dict(token)

    @retry(Unavailable, tries=3, delay=0.5, backoff=2)
    def _get(self, token: dict, url: str,
             params: Optional[dict] = None) -> requests.Response:
        if not url.startswith('http'):
            url = f'{self.base_url}{url}'
        try:
            response = self._session(token).get(url, params=params,
                                                timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise Unavailable(f'Could not reach GitHub: {e}') from e
        except AuthlibBaseError as e:
            raise IdentityProviderError(f'Bad token: {e}') from e
        if response.status_code >= 500:
            raise Unavailable(f'GitHub returned {response.status_code}')
        if response.status_code != 200:
            raise IdentityProviderError(
                f'GitHub returned {response.status_code} for {url}'
            )
        return response

    def get_identity(self, token: dict) -> domain.Identity:
        """Get the GitHub account that owns a token."""
        data = self._get(token, '/user').json()
        return domain.Identity(account_id=data['id'], login=data['login'])

    def list_active_org_memberships(self, token: dict) \
            -> List[domain.Membership]:
        """
        Get the organizations the token's owner is an active member of.

        Follows pagination. Order is as GitHub returns it.
        """
        memberships: List[domain.Membership] = []
        url: Optional[str] = '/user/memberships/orgs'
        params: Optional[dict] = {'state': 'active', 'per_page': 100}
        while url:
            response = self._get(token, url, params=params)
            for membership in response.json():
                org = membership['organization']
                memberships.append(domain.Membership(account_id=org['id'],
                                                     login=org['login']))
            url = response.links.get('next', {}).get('url')
            params = None   # The next link carries them.
        return memberships

    def primary_email(self, token: dict) -> str:
        """
        Get the primary, verified e-mail address of the token's owner.

        Raises
        ------
        :class:`.EmailUnavailable`
            If there is none.

        """
        for email in self._get(token, '/user/emails').json():
            if email.get('primary') and email.get('verified'):
                return str(email['email'])
        raise EmailUnavailable('No primary verified e-mail address')
