"""
Database configuration and session management for the key-value table.

This module sets up the SQLAlchemy engine backing the default key-value
store and provides a session factory for store operations.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL

# SQLite connections are shared across FastAPI's worker threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine       = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base         = declarative_base()

def get_db():
    """
    Yield a session for one request and close it afterwards.

    ``kv_store.get_store`` wraps the session in the SQL-backed store.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
