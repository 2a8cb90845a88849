"""Collaborators of the console: SQL storage, the registry, and GitHub."""

from flask import Flask, current_app

from . import util
from .github import GitHub
from .models import db
from .registry import InstallationRegistry
from .users import UserStore


def init_app(app: Flask) -> None:
    """Set up the database and attach the service clients to ``app``."""
    util.init_app(app)
    app.extensions['ciconsole.users'] = UserStore(db)
    app.extensions['ciconsole.registry'] = InstallationRegistry(db)
    app.extensions['ciconsole.github'] = GitHub.from_config(app.config)


def get_users() -> UserStore:
    """Get the account store of the current application."""
    return current_app.extensions['ciconsole.users']


def get_registry() -> InstallationRegistry:
    """Get the installation registry of the current application."""
    return current_app.extensions['ciconsole.registry']


def get_github() -> GitHub:
    """Get the GitHub client of the current application."""
    return current_app.extensions['ciconsole.github']
