import pytest
from fastapi.testclient import TestClient

from stocktrack.db import Database
from stocktrack.main import create_app
from stocktrack.settings import Settings
from stocktrack.tokens import TokenService
from stocktrack.users import UserStore
from stocktrack.auth import AuthService

SECRET = "test-secret-with-enough-bytes-for-hs256"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        JWT_SECRET=SECRET,
        DB_PATH=str(tmp_path / "stocktrack.db"),
        BCRYPT_ROUNDS=4,
        ITEMS_PER_PAGE=3,
        CLIENT_STORAGE_PATH=str(tmp_path / "session.json"),
    )


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "unit.db")
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def users(db):
    return UserStore(db)


@pytest.fixture
def tokens():
    return TokenService(SECRET)


@pytest.fixture
def auth(users, tokens):
    return AuthService(users, tokens, bcrypt_rounds=4)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
