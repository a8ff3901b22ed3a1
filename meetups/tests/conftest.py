# meetups/tests/conftest.py

import logging
import random
import string
from datetime import UTC, date, datetime, time, timedelta

import pytest
from fakeredis import aioredis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from meetups.config import AppConfig
from meetups.domain.entities import Identity
from meetups.gateways.user_gateway import UserGateway
from meetups.infrastructure import schemas
from meetups.infrastructure.change_feed import ChangeFeed
from meetups.infrastructure.database import create_database
from meetups.infrastructure.event_dispatcher import EventDispatcher
from meetups.infrastructure.event_handlers import EventHandlers
from meetups.infrastructure.security import SecurityService
from meetups.interactors.access_gate import AccessGate
from meetups.interactors.container import ServiceContainer
from meetups.main import Application

# Wednesday 15 October 2025, 10:00 in Paris
FIXED_NOW = datetime(2025, 10, 15, 8, 0, tzinfo=UTC)


class FakeClock:
    """A settable clock; tests move it to simulate other days."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="function")
def app_config():
    """
    Provide a test configuration with an in-memory SQLite database and no Redis.
    """
    return AppConfig(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        SECRET_KEY="test_secret_key",
        PROJECT_NAME="Test Meetups API",
        API_V1_STR="/api/v1",
        ALGORITHM="HS256",
        ACCESS_TOKEN_EXPIRE_MINUTES=5,
        TIMEZONE="Europe/Paris",
    )


@pytest.fixture
def logger():
    return logging.getLogger("MeetupsAPI.tests")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(scope="function")
async def mock_redis():
    """Provide a fake Redis client for testing."""
    redis = aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.flushall()
    await redis.aclose()


@pytest.fixture(scope="function")
async def engine():
    """Create a SQLAlchemy engine over one shared in-memory SQLite connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def database(engine):
    database = create_database(engine)
    await database.connect()
    return database


@pytest.fixture(scope="function")
async def db_session(database):
    """Provide a SQLAlchemy session for testing."""
    async with database.session() as session:
        yield session


@pytest.fixture
def security_service(app_config):
    return SecurityService(app_config)


@pytest.fixture
def feed(logger):
    return ChangeFeed(logger)


@pytest.fixture
def access_gate(database, logger):
    return AccessGate(database, logger)


@pytest.fixture
def dispatcher(feed, access_gate, logger):
    dispatcher = EventDispatcher(logger)
    EventHandlers(feed, access_gate).bind(dispatcher)
    return dispatcher


@pytest.fixture
def services(database, dispatcher, security_service, app_config, logger, clock):
    return ServiceContainer(
        database, dispatcher, security_service, app_config, logger, clock
    )


@pytest.fixture
def interactors(services, db_session):
    return services.build(db_session)


async def create_user(session, security_service, name: str) -> schemas.User:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=8))
    user_create = schemas.UserCreate(
        email=f"{name.lower()}_{suffix}@example.com",
        display_name=name,
        password="testpassword",
        company=f"{name} SAS",
        job_title="Consultant",
    )
    return await UserGateway(session).create_user(user_create, security_service)


@pytest.fixture(scope="function")
async def test_user(db_session, security_service):
    """Create a test user in the database."""
    return await create_user(db_session, security_service, "Alice")


@pytest.fixture(scope="function")
async def test_user2(db_session, security_service):
    """Create a second test user in the database."""
    return await create_user(db_session, security_service, "Bruno")


@pytest.fixture(scope="function")
async def test_user3(db_session, security_service):
    return await create_user(db_session, security_service, "Chloe")


@pytest.fixture
def alice(test_user):
    return Identity.from_user(test_user)


@pytest.fixture
def bruno(test_user2):
    return Identity.from_user(test_user2)


@pytest.fixture
def chloe(test_user3):
    return Identity.from_user(test_user3)


def event_form(**overrides) -> schemas.EventCreate:
    """A valid creation form, two days after the fixed clock."""
    fields = {
        "title": "Apéro au bar",
        "description": "Rencontre entre voyageurs",
        "hotel": {
            "name": "Hôtel Le Grand Paris",
            "address": "1 rue de Rivoli",
            "city": "Paris",
            "country": "France",
            "place_id": "place-1",
        },
        "event_date": date(2025, 10, 17),
        "event_time": time(19, 0),
        "thematique": "apero",
        "visibility": "public",
    }
    fields.update(overrides)
    return schemas.EventCreate(**fields)


@pytest.fixture
def make_event_form():
    return event_form


@pytest.fixture(scope="function")
async def test_event(interactors, alice):
    return await interactors.events.create_event(event_form(), alice)


@pytest.fixture(scope="function")
async def application(app_config, engine, clock):
    """Build the application over the test engine; the change feed stays local."""
    application = Application(config=app_config, engine=engine, clock=clock)
    await application.database.connect()
    return application


@pytest.fixture(scope="function")
async def app(application):
    return application.create_app()


@pytest.fixture(scope="function")
async def client(app):
    """Provide an HTTP client with the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


async def login(client: AsyncClient, user: schemas.User) -> dict:
    response = await client.post(
        "/api/v1/auth/login",
        data={"username": user.email, "password": "testpassword"},
    )
    assert response.status_code == 200, f"Login failed: {response.json()}"
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture(scope="function")
async def api_user(application, security_service):
    async with application.database.session() as session:
        return await create_user(session, security_service, "Alice")


@pytest.fixture(scope="function")
async def api_user2(application, security_service):
    async with application.database.session() as session:
        return await create_user(session, security_service, "Bruno")


@pytest.fixture(scope="function")
async def api_user3(application, security_service):
    async with application.database.session() as session:
        return await create_user(session, security_service, "Chloe")


@pytest.fixture(scope="function")
async def auth_header(client, api_user):
    """Provide an authorization header for authenticated requests."""
    return await login(client, api_user)


@pytest.fixture(scope="function")
async def auth_header2(client, api_user2):
    return await login(client, api_user2)


@pytest.fixture
def login_as(client):
    async def _login(user: schemas.User) -> dict:
        return await login(client, user)

    return _login
