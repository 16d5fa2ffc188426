import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.auth import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app, init_services
from app.models import User


DEFAULT_REPLY = (
    '{"keyPoints": ["First point", "Second point"], '
    '"fullSummary": "A short summary of the content.", '
    '"tags": ["python", "testing"]}'
)


class FakeLLM:
    """Stands in for LLMClient; records prompts and returns a canned reply."""

    def __init__(self, reply: str = DEFAULT_REPLY, error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, prompt, max_tokens, temperature, system=None):
        self.calls.append({"prompt": prompt, "max_tokens": max_tokens, "temperature": temperature, "system": system})
        if self.error is not None:
            raise self.error
        return self.reply

    async def close(self):
        pass


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
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def client(session_factory, llm):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    init_services(app, llm)
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, email: str, credits: int = 10) -> User:
    user = User(email=email, name=email.split("@")[0], credits=credits)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(db):
    return make_user(db, "alice@example.com")


@pytest.fixture
def bob(db):
    return make_user(db, "bob@example.com")
