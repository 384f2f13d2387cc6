# tests/conftest.py
import os

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from facehire.core.config import get_settings
from facehire.storage import SQLDocumentStore

TEST_BANK = (
    "Question,Answer,Category,Difficulty\n"
    "Q1,A1,All,easy\n"
    "Q2,A2,All,easy\n"
)

TEST_ENV = {
    "ENVIRONMENT": "testing",
    "DEBUG": "true",
    "APP_NAME": "FaceHire Test",
    "DATABASE_URL": "sqlite+aiosqlite://",
    "GRADING_MODE": "lexical",
}


@pytest.fixture
def question_bank_file(tmp_path):
    path = tmp_path / "questionBank.csv"
    path.write_text(TEST_BANK)
    return path


@pytest.fixture
def test_env_vars(question_bank_file):
    """Set up test environment variables."""
    env = dict(TEST_ENV, QUESTION_BANK_PATH=str(question_bank_file))
    os.environ.update(env)
    get_settings.cache_clear()
    yield
    # Clean up
    for key in env:
        os.environ.pop(key, None)
    get_settings.cache_clear()


@pytest.fixture
def settings(test_env_vars):
    """Get test settings."""
    return get_settings()


@pytest.fixture
def app(settings):
    """Create test app instance."""
    from facehire.interface.api.main import create_app
    return create_app()


@pytest.fixture
def client(app):
    """Create test client; entering it runs the app lifespan."""
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def store():
    """Fresh in-memory document store."""
    document_store = SQLDocumentStore("sqlite+aiosqlite://")
    await document_store.init()
    yield document_store
    await document_store.close()
