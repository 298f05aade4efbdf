from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from oyster_backend.app import app, get_cache
from oyster_backend.db.models import Base, Item, User
from oyster_backend.db.session import get_db
from oyster_backend.recommendations.cache import RecommendationCache


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cache():
    return RecommendationCache(ttl_seconds=60)


@pytest.fixture
def client(engine, cache):
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)

    def _get_db():
        session = factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_item(db):
    def _make(name: str = "Kumamoto", **attrs) -> Item:
        values = {"size": 5.0, "body": 5.0, "sweet_brininess": 5.0, "flavorfulness": 5.0, "creaminess": 5.0}
        values.update(attrs)
        item = Item(name=name, origin="Test Bay", species="Crassostrea gigas", **values)
        db.add(item)
        db.commit()
        return item

    return _make


@pytest.fixture
def make_user(db):
    def _make(name: str = "alice", **fields) -> User:
        user = User(name=name, **fields)
        db.add(user)
        db.commit()
        return user

    return _make
