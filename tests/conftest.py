import json
import time
import uuid

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from inventory_app import main, models
from inventory_app.identity import SupabaseIdentity, get_identity
from inventory_app.kv_store import SqlStore, get_store


JWT_SECRET = "test-jwt-secret"
AUTH_URL = "http://auth.test"


def make_token(user_id, secret=JWT_SECRET, expires_in=3600, audience="authenticated"):
    payload = {"sub": user_id, "aud": audience, "exp": int(time.time()) + expires_in}
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


class FakeAuthServer:
    """Admin user-creation endpoint of the identity provider."""

    def __init__(self):
        self.users = {}
        self.requests = []
        self.fail_with = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"msg": "upstream exploded"})
        if request.method == "POST" and request.url.path == "/auth/v1/admin/users":
            body = json.loads(request.content)
            if body["email"] in self.users:
                return httpx.Response(
                    422, json={"msg": "A user with this email address has already been registered"}
                )
            user = {
                "id": str(uuid.uuid4()),
                "email": body["email"],
                "user_metadata": body.get("user_metadata", {}),
                "email_confirmed": body.get("email_confirm", False),
            }
            self.users[body["email"]] = user
            return httpx.Response(200, json=user)
        return httpx.Response(404, json={"msg": "Not found"})


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionLocal()
    yield db
    db.close()
    engine.dispose()


@pytest.fixture
def store(db_session):
    return SqlStore(db_session)


@pytest.fixture
def auth_server():
    return FakeAuthServer()


@pytest.fixture
def identity(auth_server):
    return SupabaseIdentity(
        AUTH_URL,
        "service-key",
        jwt_secret=JWT_SECRET,
        transport=httpx.MockTransport(auth_server),
    )


@pytest.fixture
def app(store, identity):
    main.app.dependency_overrides[get_store] = lambda: store
    main.app.dependency_overrides[get_identity] = lambda: identity
    yield main.app
    main.app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)
