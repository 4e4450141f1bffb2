import os
import tempfile
from datetime import date, datetime, timedelta, timezone
from itertools import count
from typing import Generator, List, Optional

import jwt
import pytest
from fastapi.testclient import TestClient

# Set test environment variables FIRST
os.environ["TESTING"] = "true"
os.environ["STORAGE_BUCKET"] = ""

from business.session import Session  # noqa: E402
from database.documents import orm  # noqa: E402
from database.documents.store import DocumentStore  # noqa: E402
from database.documents.users import User, save_user  # noqa: E402
from integrations.storage import ImageStorage  # noqa: E402
from utils.constants import JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET  # noqa: E402


class RecordingImageStorage(ImageStorage):
    """Collects deleted paths instead of talking to a bucket."""

    def __init__(self, fail_on: Optional[str] = None):
        self.deleted: List[str] = []
        self.fail_on = fail_on

    def delete(self, path: str) -> None:
        if self.fail_on and self.fail_on in path:
            raise RuntimeError(f"cannot delete {path}")
        self.deleted.append(path)


@pytest.fixture(scope="function")
def setup_test_db():
    """Set up a fresh SQLite database for each test."""
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(db_fd)

    db_url = f"sqlite://{db_path}"
    os.environ["DATABASE_URL"] = db_url

    orm.run_migrations(db_url)

    yield db_url

    try:
        os.unlink(db_path)
    except OSError:
        pass


@pytest.fixture(scope="function")
def store(setup_test_db) -> DocumentStore:
    return DocumentStore(setup_test_db)


@pytest.fixture
def storage() -> RecordingImageStorage:
    return RecordingImageStorage()


@pytest.fixture
def make_user(store):
    """Factory storing a user document; ids default to user-1, user-2, ..."""
    ids = count(1)

    def factory(
        user_id: Optional[str] = None,
        username: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        birthday: Optional[date] = None,
    ) -> User:
        n = next(ids)
        user_id = user_id or f"user-{n}"
        user = User(
            id=user_id,
            email=f"{user_id}@example.com",
            username=username or user_id.replace("-", "_"),
            first_name=first_name,
            last_name=last_name,
            birthday=birthday,
            created_at=datetime.now(timezone.utc),
        )
        return save_user(store, user)

    return factory


@pytest.fixture
def session_for(store, storage):
    def factory(user: User) -> Session:
        return Session(user=user, store=store, storage=storage)

    return factory


def make_token(user_id: str, email: Optional[str] = None, expires_in: int = 3600) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email or f"{user_id}@example.com",
        "aud": JWT_AUDIENCE,
        "iss": JWT_ISSUER,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


@pytest.fixture
def auth_headers():
    def factory(user_id: str, expires_in: int = 3600) -> dict:
        return {"Authorization": f"Bearer {make_token(user_id, expires_in=expires_in)}"}

    return factory


@pytest.fixture(scope="function")
def client(setup_test_db) -> Generator:
    """Create a test client with a fresh database for each test."""
    from main import app

    with TestClient(app) as c:
        yield c
