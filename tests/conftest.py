from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import date
from pathlib import Path

_DATA_DIR = Path(tempfile.mkdtemp(prefix="resuopti-tests-"))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATA_DIR"] = str(_DATA_DIR)
os.environ["UPLOAD_DIR"] = str(_DATA_DIR / "uploads")

import pytest  # noqa: E402

from resuopti.core.cache import LRUCache  # noqa: E402
from resuopti.db.base import Base  # noqa: E402
from resuopti.db.session import SessionLocal, engine  # noqa: E402
from resuopti.services import build_services  # noqa: E402
from resuopti.storage import LocalBlobStore  # noqa: E402

TODAY = date(2024, 6, 15)


@dataclass
class FixedClock:
    current: date = TODAY

    def today(self) -> date:
        return self.current


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def cache() -> LRUCache:
    return LRUCache(max_entries=100, default_ttl=300)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def blob_store(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "uploads")


@pytest.fixture
def services(db, cache, clock, blob_store):
    return build_services(db, cache=cache, clock=clock, blob_store=blob_store)


@pytest.fixture
def user(services):
    return services.credentials.register("alice@example.com", "password123")


@pytest.fixture
def other_user(services):
    return services.credentials.register("bob@example.com", "password456")


@pytest.fixture
def position(services, user):
    return services.positions.create(user.id, "Backend Engineer", "Python services")


@pytest.fixture
def resume(services, user, position):
    return services.resumes.create_online(position.id, user.id, "Backend CV v1", "# Alice")
