import pytest

from exam_tutor import auth
from exam_tutor.config import Settings
from exam_tutor.db import init_db


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tutor.db")
    return db_path


@pytest.fixture
def settings():
    """Fast bcrypt and a known admin address."""
    return Settings(bcrypt_rounds=4, admin_emails=["admin@example.com"], require_invite=False)


@pytest.fixture
def make_user(tmp_db, settings):
    """Register a user and return (user, token)."""
    def _make(email="student@example.com", password="secret123", display_name="Student"):
        init_db(tmp_db)
        user = auth.register(tmp_db, email, password, display_name, settings=settings)
        return user, auth.login(tmp_db, email, password)
    return _make
