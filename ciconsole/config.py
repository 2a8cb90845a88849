"""Flask configuration."""
import secrets
import os

#################### General config for app ####################
SECRET_KEY = os.environ.get('SECRET_KEY', secrets.token_urlsafe(16))
"""Used by Flask to sign its own cookies. Console sessions do not use it."""

DEFAULT_LOGIN_REDIRECT_URL = os.environ.get('DEFAULT_LOGIN_REDIRECT_URL',
                                            '/console/')
"""URL to redirect the user to after a successful login."""

LOGLEVEL = os.environ.get('LOGLEVEL', 'INFO')

#################### Database ####################
SQLALCHEMY_DATABASE_URI = os.environ.get('CONSOLE_DATABASE_URI',
                                         'sqlite:///ciconsole.db')
"""Holds users, their enabled installations, and SQL-backed sessions."""

REGISTRY_DATABASE_URI = os.environ.get('REGISTRY_DATABASE_URI', None)
"""The installation registry, shared with the CI workers.

Defaults to ``SQLALCHEMY_DATABASE_URI``."""

SQLALCHEMY_TRACK_MODIFICATIONS = False

CREATE_DB = bool(int(os.environ.get('CREATE_DB', '0')))
"""Create the tables at start-up. Useful for dev and tests."""

#################### Sessions ####################
CONSOLE_SESSION_COOKIE_NAME = os.environ.get('CONSOLE_SESSION_COOKIE_NAME',
                                             'sid')
CONSOLE_SESSION_COOKIE_SECURE = bool(int(
    os.environ.get('CONSOLE_SESSION_COOKIE_SECURE', '1')
))
CONSOLE_SESSION_DURATION = int(os.environ.get('CONSOLE_SESSION_DURATION',
                                              str(90 * 24 * 60 * 60)))
"""Session lifetime in seconds. Fixed at creation, not refreshed."""

SESSION_BACKEND = os.environ.get('SESSION_BACKEND', 'sql')
"""Either ``sql`` or ``redis``."""

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_CLUSTER = bool(int(os.environ.get('REDIS_CLUSTER', '0')))

REDIS_FAKE = bool(int(os.environ.get('REDIS_FAKE', '0')))
"""Use the FakeRedis library instead of a redis service.

Useful for testing, dev, beta."""

#################### GitHub ####################
GITHUB_OAUTH_CLIENT_ID = os.environ.get('GITHUB_OAUTH_CLIENT_ID', '')
GITHUB_OAUTH_CLIENT_SECRET = os.environ.get('GITHUB_OAUTH_CLIENT_SECRET', '')
GITHUB_BASE_URL = os.environ.get('GITHUB_BASE_URL', 'https://api.github.com')
GITHUB_AUTHORIZE_URL = os.environ.get(
    'GITHUB_AUTHORIZE_URL',
    'https://github.com/login/oauth/authorize'
)
GITHUB_TOKEN_URL = os.environ.get(
    'GITHUB_TOKEN_URL',
    'https://github.com/login/oauth/access_token'
)
GITHUB_TIMEOUT = float(os.environ.get('GITHUB_TIMEOUT', '10'))
"""Seconds allowed for each call to the GitHub API."""
