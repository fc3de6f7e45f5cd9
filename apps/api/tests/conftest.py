import os

os.environ.setdefault("COURIER_RATING_TESTING", "true")
os.environ.setdefault("COURIER_RATING_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("COURIER_RATING_REMOTE_BACKEND", "sql")
os.environ.setdefault("COURIER_RATING_REMOTE_WRITE_MODE", "inline")

import random  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: F401,E402
from app.auth.dependencies import issue_access_token  # noqa: E402
from app.config import settings  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import SessionLocal  # noqa: E402
from app.db.session import engine as app_engine  # noqa: E402
from app.dependencies import (  # noqa: E402
    build_rating_code_registry,
    get_rating_code_registry,
    get_storage,
    reset_providers,
)
from app.main import app  # noqa: E402
from app.models.domain import User, new_id  # noqa: E402
from app.models.user import UserRole  # noqa: E402
from app.observability import metrics_store  # noqa: E402
from app.services.local_mirror import LocalMirror  # noqa: E402
from app.services.remote_store import SqlTableStore  # noqa: E402
from app.services.storage import RemoteWriter, TwoTierStore  # noqa: E402

ADMIN_PASSWORD = "admin-pass"
COURIER_PASSWORD = "courier-pass"


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="session", autouse=True)
def setup_test_schema():
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    yield
    Base.metadata.drop_all(bind=app_engine)


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    reset_providers()
    yield
    reset_providers()


@pytest.fixture(autouse=True)
def reset_metrics_store():
    metrics_store.reset()
    yield


@pytest.fixture(scope="session", autouse=True)
def enable_testing_mode():
    original = settings.testing
    settings.testing = True
    yield
    settings.testing = original


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def mirror():
    return LocalMirror()


@pytest.fixture
def remote():
    return SqlTableStore(SessionLocal)


@pytest.fixture
def storage(mirror, remote):
    store = TwoTierStore(local=mirror, remote=remote, writer=RemoteWriter(mode="inline"))
    yield store
    store.close()


@pytest.fixture
def registry(storage, clock):
    return build_rating_code_registry(storage, clock=clock, rng=random.Random(1234))


def _make_user(storage: TwoTierStore, username: str, password: str, role: UserRole, name: str):
    return storage.insert_user(
        User(
            id=new_id(),
            username=username,
            password=password,
            role=role,
            name=name,
            created_at=datetime.now(timezone.utc),
        )
    )


@pytest.fixture
def admin_user(storage):
    return _make_user(storage, "dispatch-admin", ADMIN_PASSWORD, UserRole.ADMIN, "Dispatch Admin")


@pytest.fixture
def courier_user(storage):
    return _make_user(storage, "jane", COURIER_PASSWORD, UserRole.COURIER, "Jane")


@pytest.fixture
def other_courier(storage):
    return _make_user(storage, "omar", COURIER_PASSWORD, UserRole.COURIER, "Omar")


@pytest.fixture
def make_user(storage):
    def _factory(username: str, role: UserRole = UserRole.COURIER, password: str = "pw"):
        return _make_user(storage, username, password, role, username.title())

    return _factory


@pytest.fixture
def client(storage, registry, admin_user):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_rating_code_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(admin_user, courier_user, other_courier):
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_access_token(user)}"}

    return {
        "admin": _headers(admin_user),
        "courier": _headers(courier_user),
        "other_courier": _headers(other_courier),
    }
