"""
Key-value store adapters.

Product records live in an external key-value store addressed by
namespaced string keys. Two backends implement the same four operations
(``get``, ``set``, ``delete``, ``list_by_prefix``):

- ``SqlStore``: a single SQLAlchemy table (the default)
- ``RedisStore``: JSON strings in Redis

Backend failures are re-raised as ``StoreError`` so handlers can report
them without knowing which backend is configured.
"""
import json
import logging
from typing import Any, List, Optional

import redis
from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .config import KV_BACKEND, REDIS_URL
from .database import get_db

logger = logging.getLogger(__name__)

# Redis client is created lazily; from_url does not open a connection
redis_client = redis.from_url(REDIS_URL, decode_responses=True)


class StoreError(Exception):
    """Raised when the key-value backend fails."""


class SqlStore:
    """Key-value store backed by the ``kv_store`` table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[Any]:
        try:
            entry = self.db.get(models.KVEntry, key)
        except SQLAlchemyError as e:
            raise StoreError(f"get {key} failed: {e}") from e
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any) -> None:
        try:
            self.db.merge(models.KVEntry(key=key, value=value))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"set {key} failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.db.query(models.KVEntry).filter(models.KVEntry.key == key).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"delete {key} failed: {e}") from e

    def list_by_prefix(self, prefix: str) -> List[Any]:
        pattern = _escape_like(prefix) + "%"
        try:
            entries = (
                self.db.query(models.KVEntry)
                .filter(models.KVEntry.key.like(pattern, escape="\\"))
                .order_by(models.KVEntry.key)
                .all()
            )
        except SQLAlchemyError as e:
            raise StoreError(f"list {prefix} failed: {e}") from e
        # LIKE is case-insensitive on some backends (SQLite)
        return [entry.value for entry in entries if entry.key.startswith(prefix)]


class RedisStore:
    """Key-value store keeping JSON-serialized values in Redis."""

    def __init__(self, client: redis.Redis):
        self.client = client

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self.client.get(key)
        except redis.RedisError as e:
            raise StoreError(f"get {key} failed: {e}") from e
        return json.loads(value) if value else None

    def set(self, key: str, value: Any) -> None:
        try:
            self.client.set(key, json.dumps(value))
        except redis.RedisError as e:
            raise StoreError(f"set {key} failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            raise StoreError(f"delete {key} failed: {e}") from e

    def list_by_prefix(self, prefix: str) -> List[Any]:
        try:
            keys = sorted(self.client.scan_iter(match=_escape_glob(prefix) + "*"))
            if not keys:
                return []
            values = self.client.mget(keys)
        except redis.RedisError as e:
            raise StoreError(f"list {prefix} failed: {e}") from e
        # Keys deleted between SCAN and MGET come back as None
        return [json.loads(v) for v in values if v]


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _escape_glob(text: str) -> str:
    for ch in "\\*?[]":
        text = text.replace(ch, "\\" + ch)
    return text


def get_store(db: Session = Depends(get_db)):
    """
    Dependency function that provides the configured key-value store.

    Args:
        db: Database session (injected); unused by the Redis backend

    Returns:
        SqlStore or RedisStore, depending on ``KV_BACKEND``
    """
    if KV_BACKEND == "redis":
        return RedisStore(redis_client)
    return SqlStore(db)
