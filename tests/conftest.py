import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from clubhouse.app import create_app
from clubhouse.auth.passwords import CredentialHasher
from clubhouse.auth.users import UserStore
from clubhouse.core.config import Settings


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    # Minimal argon2 cost keeps the suite fast; production defaults live in Settings.
    return Settings(
        secret_key="test-secret",
        users_path=tmp_path / "data" / "users.yml",
        hash_time_cost=1,
        hash_memory_cost=1024,
        hash_parallelism=1,
    )


@pytest.fixture()
def hasher(settings: Settings) -> CredentialHasher:
    return CredentialHasher(
        time_cost=settings.hash_time_cost,
        memory_cost=settings.hash_memory_cost,
        parallelism=settings.hash_parallelism,
    )


@pytest.fixture()
def store(settings: Settings) -> UserStore:
    s = UserStore(settings.users_path)
    s.open()
    return s


@pytest.fixture()
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture()
def ctx(app):
    return app.state.ctx


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


def signup(client: TestClient, email: str = "a@x.com", name: str = "A", password: str = "pw123"):
    return client.post(
        "/signup",
        data={"name": name, "email": email, "password": password},
        follow_redirects=False,
    )


def login(client: TestClient, email: str = "a@x.com", password: str = "pw123"):
    return client.post("/login", data={"email": email, "password": password}, follow_redirects=False)
