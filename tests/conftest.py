import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("COGNITO_USER_POOL_ID", "us-east-1_testpool")
os.environ.setdefault("COGNITO_CLIENT_ID", "test-client-id")
os.environ.setdefault("S3_BUCKET", "applymate-test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import applymate.models  # noqa: F401
from applymate.core.security import AuthenticatedUser
from applymate.database import Base, get_db
from applymate.dependencies import get_current_user
from applymate.main import app
from applymate.models.user import User
from applymate.services import storage

MINIMAL_PDF = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


class FakeS3:
    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail_delete = False

    def put_object(self, Bucket, Key, Body, ContentType):
        self.objects[Key] = Body

    def delete_object(self, Bucket, Key):
        if self.fail_delete:
            raise RuntimeError("s3 unavailable")
        self.deleted.append(Key)
        self.objects.pop(Key, None)

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        disposition = "&inline=1" if "ResponseContentDisposition" in Params else ""
        return f"https://signed.example/{Params['Key']}?expires={ExpiresIn}{disposition}"


@pytest.fixture
def stub_user() -> AuthenticatedUser:
    return AuthenticatedUser(id="user-1", email="user@example.com", name="User One", email_verified=True)


@pytest.fixture
def client(stub_user: AuthenticatedUser):
    def _db_override():
        yield object()

    app.dependency_overrides[get_db] = _db_override
    app.dependency_overrides[get_current_user] = lambda: stub_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anon_client():
    """Client with the real auth gate; no session cookies are sent."""

    def _db_override():
        yield object()

    app.dependency_overrides[get_db] = _db_override
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    session.add(User(id="user-1", email="user@example.com", name="User One"))
    session.add(User(id="user-2", email="other@example.com", name="Other User"))
    session.commit()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_client(db_session, stub_user: AuthenticatedUser):
    def _db_override():
        yield db_session

    app.dependency_overrides[get_db] = _db_override
    app.dependency_overrides[get_current_user] = lambda: stub_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_s3(monkeypatch) -> FakeS3:
    fake = FakeS3()
    monkeypatch.setattr(storage, "get_s3_client", lambda: fake)
    return fake
