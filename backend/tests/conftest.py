from pathlib import Path
import os
import tempfile
import pytest

# Point the app at a throwaway database before `usercrud` is imported.
_DB_DIR = Path(tempfile.mkdtemp(prefix="usercrud-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret-with-enough-bytes-for-hs256-signing"
os.environ.pop("KAFKA_BROKERS", None)

from sqlmodel import SQLModel, Session  # noqa: E402

from usercrud.database import engine  # noqa: E402
from usercrud import models  # noqa: E402,F401


@pytest.fixture(autouse=True)
def reset_db():
    """Ensure fresh tables for every test."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s
