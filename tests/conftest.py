"""Shared fixtures: in-memory document store, signed tokens and an API client."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ADMIN_EMAILS", '["admin@example.com"]')

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import readdash.models  # noqa: F401
from readdash.core.security import create_access_token
from readdash.db.base import Base
from readdash.db.store import SqlDocumentStore, get_store
from readdash.main import app
from readdash.models.components import (
    Blank,
    FillBlanksComponent,
    MultipleChoiceComponent,
    Option,
    PassageComponent,
    SentenceCompletionComponent,
    CompletionAnswer,
    TableComponent,
    TitleComponent,
    TrueFalseNotGivenComponent,
)
from readdash.routes.admin import get_generation_service


@pytest.fixture
def store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield SqlDocumentStore(session)
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sample_components():
    """Title, passage, table and three question kinds, in authoring order."""
    return [
        TitleComponent(id="c-title", order=0, content="Capitals"),
        PassageComponent(id="c-passage", order=1, content="Paris is the capital of France.\nLyon is not."),
        TableComponent(
            id="c-table", order=2,
            headers=["City", "Country"],
            rows=[["Paris", "France"], ["Madrid", "Spain"]],
        ),
        MultipleChoiceComponent(
            id="c-mc", order=3,
            question="What is the capital of France?",
            options=[Option(id="a", text="Paris"), Option(id="b", text="Lyon")],
            correct_option="a",
            reason="The first sentence says so.",
        ),
        FillBlanksComponent(
            id="c-fill", order=4,
            question="The capital of France is ___.",
            blanks=[Blank(id="b1", answer="Paris")],
        ),
        TrueFalseNotGivenComponent(
            id="c-tfng", order=5,
            question="Lyon is the capital of France.",
            correct_answer="false",
        ),
        SentenceCompletionComponent(
            id="c-sc", order=6,
            question="Paris is the capital of ___.",
            answers=[CompletionAnswer(id="s1", text="France")],
            word_limit=1,
        ),
    ]


def bearer(uid, email, name=None):
    token = create_access_token({"sub": uid, "email": email, "name": name})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def learner_headers():
    return bearer("learner-1", "learner@example.com", "Lena Learner")


@pytest.fixture
def admin_headers():
    return bearer("admin-1", "admin@example.com", "Ada Admin")


class FakeGenerator:
    def __init__(self, generated=None, error=None):
        self.generated = generated
        self.error = error
        self.calls = []

    def generate_quiz(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.generated


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def client(store, generator):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_generation_service] = lambda: generator
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
