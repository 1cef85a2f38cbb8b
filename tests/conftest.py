# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EXPIRY_SWEEP_MODE"] = "on_read"
os.environ["REDIS_URL"] = ""
os.environ.pop("PUSH_GATEWAY_URL", None)

from noisegarden.core.security import Identity  # noqa: E402
from noisegarden.db.session import Base, enable_sqlite_foreign_keys  # noqa: E402
from noisegarden.db.session import get_db as app_get_session  # noqa: E402
from noisegarden.db.time import utcnow  # noqa: E402
from noisegarden.main import app as fastapi_app  # noqa: E402
from noisegarden.models import User  # noqa: E402
from noisegarden.models.user import ROLE_ADMIN, ROLE_MODERATOR, ROLE_USER  # noqa: E402
from noisegarden.services.notifications import set_push_client  # noqa: E402
from tests.helpers import auth_headers, identity_of  # noqa: E402

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def reset_push_client() -> Iterator[None]:
    set_push_client(None)
    yield
    set_push_client(None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def now() -> datetime:
    """A fixed reference instant for time-driven service tests."""
    return utcnow().replace(microsecond=0)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users with a given role."""

    def _make_user(username: str, role: str = ROLE_USER) -> User:
        user = User(username=username, role=role)
        db_session.add(user)
        db_session.flush()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    """Create and return the primary author."""
    return make_user("alice")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    return make_user("bob")


@pytest.fixture()
def moderator(make_user: Callable[..., User]) -> User:
    return make_user("mod_mia", ROLE_MODERATOR)


@pytest.fixture()
def admin(make_user: Callable[..., User]) -> User:
    return make_user("admin_ada", ROLE_ADMIN)


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    return auth_headers(other_user)


@pytest.fixture()
def moderator_token(moderator: User) -> dict[str, str]:
    return auth_headers(moderator)


@pytest.fixture()
def admin_token(admin: User) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture()
def author(test_user: User) -> Identity:
    return identity_of(test_user)


@pytest.fixture()
def create_content(db_session: Session) -> Callable[..., int]:
    """Return a factory creating content through the service layer."""
    from noisegarden.services.content import ContentService

    def _create(identity: Identity, body: str = "hello garden", **kwargs) -> int:
        item = ContentService.create(db_session, identity, body, **kwargs)
        return item.id

    return _create
