"""SQLAlchemy models for the console and the installation registry."""

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, \
    LargeBinary, String, Text

db: SQLAlchemy = SQLAlchemy()


class DBSessionRecord(db.Model):
    """
    Persistence for :class:`.domain.Session`.

    +------------+-------------+------+-----+
    | Field      | Type        | Null | Key |
    +------------+-------------+------+-----+
    | id         | binary(16)  | NO   | PRI |
    | data       | blob        | NO   |     |
    | expires_at | datetime    | NO   |     |
    +------------+-------------+------+-----+
    """

    __tablename__ = 'sessions'

    id = Column(LargeBinary(16), primary_key=True)
    data = Column(LargeBinary, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    """Stored as naive UTC."""


class DBUser(db.Model):
    """Persistence for :class:`.domain.User`."""

    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False)
    github_id = Column(BigInteger, nullable=False, unique=True)
    github_token = Column(Text, nullable=True)
    """JSON-serialized OAuth2 token."""
    stripe_customer_id = Column(String(255), nullable=True)


class DBUserInstallation(db.Model):
    """Installations that a user has enabled."""

    __tablename__ = 'users_installations'

    user_id = Column(ForeignKey('users.id'), primary_key=True,
                     autoincrement=False)
    installation_id = Column(BigInteger, primary_key=True,
                             autoincrement=False)


class DBInstallation(db.Model):
    """
    The registry's record of an installation of the app on an account.

    Rows are written when GitHub reports an installation. The console only
    flips ``enabled_at``.
    """

    __bind_key__ = 'registry'
    __tablename__ = 'gh_installations'

    installation_id = Column(BigInteger, primary_key=True,
                             autoincrement=False)
    account_id = Column(BigInteger, nullable=False, index=True)
    enabled_at = Column(DateTime, nullable=True)
