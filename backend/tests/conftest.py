"""Pytest configuration and fixtures for ColetaOps tests.

Every test gets a fresh in-memory SQLite database.  Service tests use
``db_session`` directly; API tests go through ``client``, whose requests
each open their own session on the same database (commit on success,
rollback on error, like production).
"""

import datetime as dt
from dataclasses import dataclass
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from coletaops.auth.jwt import create_access_token
from coletaops.auth.password import hash_password
from coletaops.auth.permissions import get_permissions
from coletaops.auth.revocation import TokenRevocation
from coletaops.database import Base, get_db
from coletaops.main import app
from coletaops.models import (
    CollectionPoint,
    Destination,
    DestinationType,
    Employee,
    MaterialType,
    Organization,
    Route,
    RouteAssignment,
    RouteStop,
    Team,
    User,
    UserRole,
    Vehicle,
)

TEST_PASSWORD = "secret123"


# ── Database ─────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with get_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Token revocation (in memory instead of Redis) ────────────────

@pytest.fixture(autouse=True)
def revoked_tokens():
    revoked: set[str] = set()

    async def revoke_token(token: str, expires_at: float) -> bool:
        revoked.add(token)
        return True

    async def is_revoked(token: str) -> bool:
        return token in revoked

    # own MonkeyPatch so a test's monkeypatch.undo() does not drop these patches
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(TokenRevocation, "revoke_token", staticmethod(revoke_token))
        mp.setattr(TokenRevocation, "is_revoked", staticmethod(is_revoked))
        yield revoked


# ── Organizations and users ──────────────────────────────────────

@pytest.fixture(scope="session")
def password_hash() -> str:
    # bcrypt is slow on purpose; hash once per test session
    return hash_password(TEST_PASSWORD)


async def _create_org(session: AsyncSession, name: str, slug: str) -> Organization:
    org = Organization(name=name, slug=slug)
    session.add(org)
    await session.commit()
    return org


@pytest_asyncio.fixture
async def org(db_session: AsyncSession) -> Organization:
    return await _create_org(db_session, "EcoRecicla", "ecorecicla")


@pytest_asyncio.fixture
async def other_org(db_session: AsyncSession) -> Organization:
    return await _create_org(db_session, "Verde Coleta", "verde-coleta")


@pytest.fixture
def make_user(db_session: AsyncSession, password_hash: str):
    """Factory: ``await make_user(org, UserRole.COLETOR)``."""

    async def _make(org: Organization, role: UserRole, email: str | None = None) -> User:
        user = User(
            email=email or f"{role.value.lower()}@{org.slug}.example.com",
            hashed_password=password_hash,
            name=f"{role.value.title()} User",
            role=role,
            org_id=org.id,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def admin(org, make_user) -> User:
    return await make_user(org, UserRole.ADMIN)


@pytest_asyncio.fixture
async def collector(org, make_user) -> User:
    return await make_user(org, UserRole.COLETOR)


@pytest_asyncio.fixture
async def sorter(org, make_user) -> User:
    return await make_user(org, UserRole.TRIAGEM)


@pytest_asyncio.fixture
async def supervisor(org, make_user) -> User:
    return await make_user(org, UserRole.SUPERVISOR)


@pytest_asyncio.fixture
async def storekeeper(org, make_user) -> User:
    return await make_user(org, UserRole.ALMOXARIFE)


@pytest_asyncio.fixture
async def manager(org, make_user) -> User:
    return await make_user(org, UserRole.GESTOR_OPERACAO)


@pytest_asyncio.fixture
async def viewer(org, make_user) -> User:
    return await make_user(org, UserRole.VISUALIZADOR)


@pytest_asyncio.fixture
async def other_admin(other_org, make_user) -> User:
    return await make_user(other_org, UserRole.ADMIN)


def token_for(user: User) -> str:
    return create_access_token(
        user_id=user.id,
        role=user.role.value,
        org_id=user.org_id,
        permissions=get_permissions(user.role),
    )


@pytest.fixture
def auth_headers():
    """Factory: ``auth_headers(user)`` → Authorization header dict."""

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _headers


# ── Catalog ──────────────────────────────────────────────────────

@dataclass
class Catalog:
    pet: MaterialType
    paper: MaterialType
    points: list[CollectionPoint]
    route: Route
    stops: list[RouteStop]
    employee: Employee
    team: Team
    vehicle: Vehicle
    destination: Destination


async def build_catalog(session: AsyncSession, org: Organization) -> Catalog:
    """Two material types, a two-stop route, a team, a vehicle and a destination."""
    pet = MaterialType(org_id=org.id, name="PET", category="PLASTICO")
    paper = MaterialType(org_id=org.id, name="Paper/Cardboard", category="PAPEL")
    points = [
        CollectionPoint(org_id=org.id, name="Bakery", address="Rua A, 10", type="comercio"),
        CollectionPoint(org_id=org.id, name="Condo Sol", address="Rua B, 200", type="condominio"),
    ]
    route = Route(org_id=org.id, name="Centro")
    employee = Employee(org_id=org.id, name="João Silva")
    team = Team(org_id=org.id, name="Team Alpha")
    vehicle = Vehicle(org_id=org.id, plate="ABC1D23", model="VW Delivery", capacity_kg=3000)
    destination = Destination(org_id=org.id, name="Coop Recicla", type=DestinationType.COOPERATIVA)
    session.add_all([pet, paper, *points, route, employee, team, vehicle, destination])
    await session.flush()

    stops = [
        RouteStop(route_id=route.id, point_id=point.id, order_index=index)
        for index, point in enumerate(points)
    ]
    session.add_all(stops)
    await session.commit()
    return Catalog(
        pet=pet,
        paper=paper,
        points=points,
        route=route,
        stops=stops,
        employee=employee,
        team=team,
        vehicle=vehicle,
        destination=destination,
    )


@pytest_asyncio.fixture
async def catalog(db_session: AsyncSession, org: Organization) -> Catalog:
    return await build_catalog(db_session, org)


@pytest_asyncio.fixture
async def other_catalog(db_session: AsyncSession, other_org: Organization) -> Catalog:
    return await build_catalog(db_session, other_org)


@pytest_asyncio.fixture
async def assignment(db_session: AsyncSession, catalog: Catalog) -> RouteAssignment:
    assignment = RouteAssignment(
        route_id=catalog.route.id,
        team_id=catalog.team.id,
        vehicle_id=catalog.vehicle.id,
        date=dt.date.today(),
        shift="manha",
    )
    db_session.add(assignment)
    await db_session.commit()
    return assignment


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: Tests going through the HTTP API")
    config.addinivalue_line("markers", "auth: Authentication and permission tests")
    config.addinivalue_line("markers", "workflow: Collection workflow tests")
