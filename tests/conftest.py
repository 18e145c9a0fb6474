import os

# dealapi 모듈 import 전에 테스트 환경 설정
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["FIREBASE_PROJECT_ID"] = "test-project"

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dealapi.core.exceptions import AuthenticationError
from dealapi.models.base import Base
from dealapi.models import (  # noqa: F401
    catalog,
    check_in,
    points,
    site_setting,
    submission,
    user,
    withdrawal,
)
from dealapi.models.points import PointsAction
from dealapi.repositories.points_repository import PointsRepository
from dealapi.repositories.user_repository import UserRepository
from dealapi.schemas.auth import TokenClaims


class FakeQueryCache:
    """메모리 기반 QueryCache 대체 - 무효화된 키를 기록"""

    enabled = True

    def __init__(self):
        self.store = {}
        self.invalidated = []

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ttl_seconds):
        self.store[key] = value
        return True

    async def invalidate(self, keys):
        for key in keys:
            self.invalidated.append(key)
            self.store.pop(key, None)
        return True

    async def ping(self):
        return True

    async def close(self):
        pass


class FakeTokenVerifier:
    """Bearer 토큰 문자열을 그대로 uid 로 사용"""

    def verify(self, token: str) -> TokenClaims:
        if token == "invalid":
            raise AuthenticationError("Invalid or expired token")
        return TokenClaims(uid=token, email=f"{token}@example.com", name=token.title())


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db_session):
    """포인트 잔액을 가진 사용자 생성 (잔액은 포인트 내역으로 지급)"""

    def _make_user(external_id="user-1", points=0, is_admin=False, is_banned=False):
        user_repo = UserRepository(db_session)
        created = user_repo.create_user(
            external_id=external_id,
            email=f"{external_id}@example.com",
            display_name=external_id.replace("-", " ").title(),
            is_admin=is_admin,
        )
        if points:
            PointsRepository(db_session).transact(
                user_id=created.id,
                points=points,
                action=PointsAction.OTHER,
                description="Initial balance",
                ref_id=f"seed_{created.id}",
            )
        if is_banned:
            user_repo.set_banned(created.id, True)
        return user_repo.get_by_id(created.id)

    return _make_user


@pytest.fixture
def fake_cache():
    return FakeQueryCache()


@pytest.fixture
def app(db_session, fake_cache):
    from dealapi.database.session import get_db
    from dealapi.main import app as fastapi_app

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.container.token_verifier.override(providers.Object(FakeTokenVerifier()))
    fastapi_app.container.query_cache.override(providers.Object(fake_cache))
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    fastapi_app.container.token_verifier.reset_override()
    fastapi_app.container.query_cache.reset_override()


@pytest.fixture
def client(app):
    return TestClient(app)