from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from filevault import main
from filevault.db import Base, create_db_engine, get_db
from filevault.security import Principal
from filevault.services.accounts import AccountStore
from filevault.services.file_ops import FileOps


@pytest.fixture
def alice() -> Principal:
    return Principal(username='alice', is_admin=False)


@pytest.fixture
def ops(tmp_path) -> FileOps:
    return FileOps(tmp_path / 'data', chunk_size=4096)


@pytest.fixture
def session_factory():
    engine = create_db_engine('sqlite://')
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def client(monkeypatch, ops, session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(main.app.state, 'file_ops', ops)
    main.app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()


@pytest.fixture
def bearer(ops, session_factory):
    def _bearer(username: str, is_admin: bool = False) -> dict[str, str]:
        db = session_factory()
        try:
            AccountStore(db, ops.sandbox.base_dir).create_account(username, 'password123', is_admin)
        finally:
            db.close()
        token = main.app.state.token_service.issue(username, is_admin)
        return {'Authorization': f'Bearer {token}'}

    return _bearer
