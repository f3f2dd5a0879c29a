"""
Test configuration and fixtures.

Provides:
- In-memory SQLite schema, rebuilt for each test
- Seeded roles, stage catalog, executive levels and case types
- Bearer token minting for authenticated tests
- HTTPX AsyncClient with the database and ITS gateway overridden
"""
import os
from itertools import count
from typing import AsyncGenerator, Callable, Generator

# Must be set before casework.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["SENTRY_DSN"] = ""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from casework.cli import seed_defaults
from casework.core.config import settings
from casework.core.deps import get_db, get_its_gateway
from casework.core.security import create_access_token
from casework.db.base import Base
from casework.db.enums import Role
from casework.db.models import Applicant, Case, CaseType, User, WorkflowStage
from casework.db.session import SessionLocal, engine
from casework.main import app
from casework.services import case_service, workflow_service
from casework.services.its_gateway import ItsGateway, SlidingWindowRateLimiter


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    The engine uses a StaticPool over one in-memory connection, so the app's
    sessions and this one see the same data.
    """
    Base.metadata.create_all(engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def seed(db: Session) -> dict[str, int]:
    """Built-in roles, default stages, executive levels and case types."""
    created = seed_defaults(db)
    db.commit()
    return created


@pytest.fixture(scope="function")
def case_type(db: Session, seed) -> CaseType:
    return db.query(CaseType).filter(CaseType.name == "baaseteen").one()


def _stage_by_key(db: Session, stage_key: str) -> WorkflowStage:
    return db.query(WorkflowStage).filter(WorkflowStage.stage_key == stage_key).one()


@pytest.fixture(scope="function")
def stage_by_key(db: Session, seed) -> Callable[[str], WorkflowStage]:
    """Look up a seeded global stage by its key."""
    return lambda stage_key: _stage_by_key(db, stage_key)


# =============================================================================
# User Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def make_user(db: Session, seed) -> Callable[..., User]:
    """Factory for users with a given primary role."""
    sequence = count(1)

    def _make(role: str = Role.DCM.value, **overrides) -> User:
        n = next(sequence)
        values = {
            "username": f"{role}-{n}",
            "email": f"{role}-{n}@test.com",
            "full_name": f"Test {role.replace('_', ' ').title()} {n}",
            "role": role,
        }
        values.update(overrides)
        user = User(**values)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture(scope="function")
def super_admin(make_user) -> User:
    return make_user(Role.SUPER_ADMIN.value)


@pytest.fixture(scope="function")
def dcm_user(make_user) -> User:
    return make_user(Role.DCM.value)


@pytest.fixture(scope="function")
def counselor(make_user) -> User:
    return make_user(Role.COUNSELOR.value)


@pytest.fixture(scope="function")
def welfare_user(make_user) -> User:
    return make_user(Role.WELFARE.value)


@pytest.fixture(scope="function")
def executive_user(make_user) -> User:
    return make_user(Role.EXECUTIVE.value, executive_level=1)


# =============================================================================
# Auth Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Bearer header for a user at their current token_version."""

    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(user.id, user.token_version)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# =============================================================================
# Case Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def make_case(db: Session, case_type: CaseType, dcm_user: User) -> Callable[..., Case]:
    """Factory for cases created through case_service (draft stage)."""
    sequence = count(1)

    def _make(**overrides) -> Case:
        n = next(sequence)
        applicant = Applicant(
            its_number=f"{30000000 + n}",
            first_name="Applicant",
            last_name=str(n),
            full_name=f"Applicant {n}",
        )
        db.add(applicant)
        db.commit()
        data = {"applicant_id": applicant.id, "case_type_id": case_type.id}
        data.update(overrides)
        return case_service.create_case(db, data, dcm_user)

    return _make


@pytest.fixture(scope="function")
def place_case(db: Session, dcm_user: User) -> Callable[..., Case]:
    """Move a case straight onto a stage (by key), optionally with a status."""

    def _place(case: Case, stage_key: str, status: str | None = None) -> Case:
        stage = _stage_by_key(db, stage_key)
        locked = workflow_service.lock_case(db, case.id)
        workflow_service.move_to_stage(
            db, locked, stage, "test_setup", dcm_user, status=status, allow_regression=True
        )
        db.refresh(locked)
        return locked

    return _place


# =============================================================================
# ITS Gateway Fixtures
# =============================================================================

class FakeClock:
    """Monotonic clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(scope="function")
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="function")
def its_routes() -> dict[str, httpx.Response]:
    """Path -> canned response. Unlisted paths return 404."""
    return {}


@pytest.fixture(scope="function")
def its_gateway(its_routes, fake_clock) -> Generator[ItsGateway, None, None]:
    def handler(request: httpx.Request) -> httpx.Response:
        return its_routes.get(request.url.path, httpx.Response(404, json={}))

    gateway = ItsGateway(
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        limiter=SlidingWindowRateLimiter(clock=fake_clock, sleep=fake_clock.sleep),
    )
    yield gateway
    gateway.close()


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def upload_dir(tmp_path, monkeypatch) -> str:
    path = str(tmp_path / "uploads")
    monkeypatch.setattr(settings, "UPLOAD_DIR", path)
    return path


@pytest.fixture(scope="function")
async def client(db: Session, its_gateway: ItsGateway) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient bound to the test session. Pass auth_headers(user) per request.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_its_gateway] = lambda: its_gateway

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
