"""
SQLAlchemy ORM models for the key-value store.

Product records are stored as JSON documents under namespaced string keys,
so the schema is a single two-column table.
"""
from sqlalchemy import Column, String, JSON
from .database import Base

class KVEntry(Base):
    """
    One key-value pair.

    Attributes:
        key (str): Namespaced key, e.g. ``products:{ownerId}:{id}``
        value (dict): JSON document stored under the key
    """
    __tablename__ = "kv_store"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)
