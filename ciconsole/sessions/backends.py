"""
Durable storage for sessions.

A backend stores opaque session bytes and an expiry, keyed by the raw 16
bytes of the session identifier. Backends know nothing about the contents of
a session; that is the business of :class:`.SessionStore`.

Two backends are provided:

- :class:`.SQLSessionBackend` keeps sessions in the console database, next to
  the users who own them.
- :class:`.RedisSessionBackend` keeps each session in a Redis hash that
  expires on its own.

Both raise :class:`.SessionStorageError` when storage cannot be reached.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional, Tuple

import dateutil.parser
import redis
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from pytz import UTC
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..services.models import DBSessionRecord
from ..services.util import transaction
from .exceptions import SessionStorageError

logger = logging.getLogger(__name__)

Record = Tuple[bytes, datetime]
"""Serialized session and its expiry."""


def _to_utc(when: datetime) -> datetime:
    if when.tzinfo is None:
        return when.replace(tzinfo=UTC)
    return when.astimezone(UTC)


class SQLSessionBackend(object):
    """Stores sessions in the ``sessions`` table."""

    def __init__(self, db: SQLAlchemy) -> None:
        self.db = db

    def load(self, session_id: uuid.UUID) -> Optional[Record]:
        """Get the stored bytes and expiry for a session, if any."""
        try:
            record = self.db.session.get(DBSessionRecord, session_id.bytes)
        except SQLAlchemyError as e:
            raise SessionStorageError(f'Failed to load session: {e}') from e
        if record is None:
            return None
        return record.data, _to_utc(record.expires_at)

    def upsert(self, session_id: uuid.UUID, data: bytes,
               expires_at: datetime) -> None:
        """
        Insert a session, or overwrite the data of an existing one.

        The expiry of an existing row is left alone.
        """
        values = {
            'id': session_id.bytes,
            'data': data,
            'expires_at': _to_utc(expires_at).replace(tzinfo=None)
        }
        try:
            dialect = self._dialect()
            if dialect == 'mysql':
                stmt = mysql.insert(DBSessionRecord).values(**values)
                stmt = stmt.on_duplicate_key_update(data=stmt.inserted.data)
            elif dialect in ('sqlite', 'postgresql'):
                module = sqlite if dialect == 'sqlite' else postgresql
                stmt = module.insert(DBSessionRecord).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=['id'],
                    set_={'data': stmt.excluded.data}
                )
            else:
                self._update_or_insert(values)
                return
            with transaction() as dbsession:
                dbsession.execute(stmt)
                dbsession.commit()
        except SQLAlchemyError as e:
            raise SessionStorageError(f'Failed to save session: {e}') from e

    def _dialect(self) -> str:
        return str(self.db.engine.dialect.name)

    def _update_or_insert(self, values: dict) -> None:
        """Upsert for dialects without a native statement. Last write wins."""
        try:
            with transaction() as dbsession:
                updated = self._update_data(dbsession, values)
                if not updated:
                    dbsession.add(DBSessionRecord(**values))
                dbsession.commit()
        except IntegrityError:
            # Another request inserted the row after our update missed it.
            logger.debug('Lost insert race for session, updating instead')
            with transaction() as dbsession:
                self._update_data(dbsession, values)
                dbsession.commit()

    @staticmethod
    def _update_data(dbsession, values: dict) -> int:
        return dbsession.query(DBSessionRecord) \
            .filter(DBSessionRecord.id == values['id']) \
            .update({DBSessionRecord.data: values['data']})

    def delete(self, session_id: uuid.UUID) -> None:
        """Remove a session. Deleting an unknown session is not an error."""
        try:
            with transaction() as dbsession:
                dbsession.query(DBSessionRecord) \
                    .filter(DBSessionRecord.id == session_id.bytes) \
                    .delete()
                dbsession.commit()
        except SQLAlchemyError as e:
            raise SessionStorageError(f'Failed to delete session: {e}') from e


class RedisSessionBackend(object):
    """
    Stores each session in a Redis hash with ``data`` and ``expires_at``.

    The client is thread safe and takes a pooled connection for each
    command, so one backend is shared by all requests.
    """

    def __init__(self, r: redis.Redis) -> None:
        self.r = r

    @staticmethod
    def _key(session_id: uuid.UUID) -> bytes:
        return b'session:' + session_id.bytes

    def load(self, session_id: uuid.UUID) -> Optional[Record]:
        """Get the stored bytes and expiry for a session, if any."""
        try:
            record = self.r.hgetall(self._key(session_id))
        except redis.exceptions.RedisError as e:
            raise SessionStorageError(f'Failed to load session: {e}') from e
        if b'data' not in record or b'expires_at' not in record:
            return None
        try:
            expires_at = dateutil.parser.parse(
                record[b'expires_at'].decode('utf-8')
            )
        except (ValueError, OverflowError, UnicodeDecodeError):
            logger.debug('Discarding session with bad expiry')
            return None
        return record[b'data'], _to_utc(expires_at)

    def upsert(self, session_id: uuid.UUID, data: bytes,
               expires_at: datetime) -> None:
        """
        Insert a session, or overwrite the data of an existing one.

        The expiry of an existing hash is left alone.
        """
        key = self._key(session_id)
        try:
            pipe = self.r.pipeline()
            pipe.hset(key, 'data', data)
            pipe.hsetnx(key, 'expires_at', _to_utc(expires_at).isoformat())
            pipe.expireat(key, expires_at)
            pipe.execute()
        except redis.exceptions.RedisError as e:
            raise SessionStorageError(f'Failed to save session: {e}') from e

    def delete(self, session_id: uuid.UUID) -> None:
        """Remove a session. Deleting an unknown session is not an error."""
        try:
            self.r.delete(self._key(session_id))
        except redis.exceptions.RedisError as e:
            raise SessionStorageError(f'Failed to delete session: {e}') from e


def get_redis(app: Flask) -> redis.Redis:
    """Make a Redis client from the application config."""
    config = app.config
    if config.get('REDIS_FAKE'):
        import fakeredis
        return fakeredis.FakeStrictRedis()

    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    logger.debug('New Redis connection at %s, port %s', host, port)
    if config.get('REDIS_CLUSTER'):
        return redis.RedisCluster(host=host, port=port)
    return redis.StrictRedis(host=host, port=port,
                             db=int(config.get('REDIS_DATABASE', '0')))


def get_backend(app: Flask, db: SQLAlchemy):
    """Pick the session backend named by ``SESSION_BACKEND``."""
    name = app.config.get('SESSION_BACKEND', 'sql')
    if name == 'redis':
        return RedisSessionBackend(get_redis(app))
    if name == 'sql':
        return SQLSessionBackend(db)
    raise ValueError(f'Unknown session backend: {name}')
