import pytest
import os
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import fgstore.models  # noqa: F401
from fgstore.core.config import settings
from fgstore.core.deps import get_db
from fgstore.core.security import create_access_token
from fgstore.core.security_current import Actor
from fgstore.db.base import Base
from fgstore.main import app
from fgstore.models.user import User


@pytest.fixture()
def test_context():
    original_secret = settings.secret_key
    settings.secret_key = "test-secret-key"

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client, session_local

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
    settings.secret_key = original_secret


@pytest.fixture()
def db_session(test_context):
    _, session_local = test_context
    db = session_local()
    try:
        yield db
    finally:
        db.close()


def seed_user(
    session_local,
    *,
    email: str,
    role: str,
    display_name: str | None = None,
    status: str = "active",
) -> User:
    db = session_local()
    try:
        user = User(email=email, role=role, display_name=display_name or email.split("@")[0], status=status)
        db.add(user)
        db.commit()
        db.refresh(user)
        db.expunge(user)
        return user
    finally:
        db.close()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def actor_for(user: User) -> Actor:
    return Actor.from_user(user)
