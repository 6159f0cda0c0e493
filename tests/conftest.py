import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import splitgroups.models  # noqa: F401
from splitgroups.auth import require_user
from splitgroups.db import get_session
from splitgroups.main import app
from splitgroups.models.user import User
from splitgroups.services import group_service


@pytest.fixture
def session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def users(session):
    made = {}
    for key, name in [("a", "Alice"), ("b", "Bob"), ("c", "Carol"), ("d", "Dave")]:
        u = User(name=name, email=f"{name.lower()}@example.com")
        session.add(u)
        made[key] = u
    session.commit()
    for u in made.values():
        session.refresh(u)
    return made


@pytest.fixture
def group(session, users):
    """Alice's group with Bob and Carol accepted."""
    g = group_service.create_group(session, users["a"], "Trip", "Weekend away")
    for key in ("b", "c"):
        group_service.invite_member(session, g.id, users["a"], users[key].email)
        group_service.respond_to_invite(session, g.id, users[key], True)
    session.refresh(g)
    return g


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    def _login(user):
        identity = {"id": user.id, "name": user.name, "email": user.email}
        app.dependency_overrides[require_user] = lambda: identity
        return client
    return _login
