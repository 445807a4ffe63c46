"""Shared test fixtures for backend tests."""

import os

# In-memory SQLite; the engine picks a StaticPool so all connections (including threads) share one DB
os.environ["SABER_DATABASE_URL"] = "sqlite://"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from saber.core.database import engine as test_engine  # noqa: E402
from saber.core.errors import GenerationError  # noqa: E402
from saber.core.security import TokenClaims, create_access_token, hash_password  # noqa: E402
from saber.models.user import User  # noqa: E402
from saber.services.llm import get_llm_provider  # noqa: E402
from saber.services.llm.base import BaseLLMProvider  # noqa: E402


class FakeProvider(BaseLLMProvider):
    """Records every call. Set `title`/`reply` to control output, `fail_*` to raise."""

    def __init__(self, title="Photosynthesis Basics", reply="Hello from SABER"):
        self.title = title
        self.reply = reply
        self.fail_generate = False
        self.fail_chat = False
        self.generate_calls: list[dict] = []
        self.chat_calls: list[dict] = []

    @property
    def calls(self) -> int:
        return len(self.generate_calls) + len(self.chat_calls)

    async def generate(self, prompt, max_tokens, temperature, stop_sequences=None):
        self.generate_calls.append({
            "prompt": prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "stop_sequences": stop_sequences,
        })
        if self.fail_generate:
            raise GenerationError()
        return self.title

    async def chat(self, message, history, system_prompt, temperature, max_tokens):
        self.chat_calls.append({
            "message": message,
            "history": history,
            "system_prompt": system_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.fail_chat:
            raise GenerationError()
        return self.reply


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import saber.models  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def session():
    with Session(test_engine) as s:
        yield s


@pytest.fixture
def provider():
    return FakeProvider()


def seed_user(name="Ana", email="ana@example.com", password="password123") -> int:
    with Session(test_engine) as session:
        user = User(name=name, email=email, password_hash=hash_password(password))
        session.add(user)
        session.commit()
        session.refresh(user)
        return user.id  # type: ignore[return-value]


def auth_headers(user_id: int, email="ana@example.com", name="Ana") -> dict[str, str]:
    token = create_access_token(TokenClaims(id=user_id, email=email, name=name))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(provider):
    """FastAPI TestClient on the in-memory database with the LLM provider replaced."""
    from saber.main import app

    app.dependency_overrides[get_llm_provider] = lambda: provider

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
