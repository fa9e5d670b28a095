from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings

_MEMORY_URLS = {'sqlite://', 'sqlite:///:memory:'}


class Base(DeclarativeBase):
    pass


def create_db_engine(url: str) -> Engine:
    if not url.startswith('sqlite'):
        return create_engine(url, pool_pre_ping=True)
    # in-memory databases live in a single connection shared across threads
    extra = {'poolclass': StaticPool} if url in _MEMORY_URLS else {}
    return create_engine(url, connect_args={'check_same_thread': False}, **extra)


engine = create_db_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
