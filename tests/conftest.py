import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lanmon.core.database import Base
from lanmon.schemas.services import Target
from tests.mocks.fake_gpu import StubGpuReader


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine for tests."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Async session bound to the in-memory engine."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_targets() -> list[Target]:
    """Targets served by the fake inference app over ASGITransport."""
    return [
        Target(id="web", name="Web", host="fake-lan:80", type="http", url="http://fake-lan/ok"),
        Target(id="broken", name="Broken", host="fake-lan:80", type="http", url="http://fake-lan/error"),
        Target(id="ollama", name="Ollama", host="fake-lan:11434", type="ollama", url="http://fake-lan/api/tags"),
        Target(id="printer", name="Printer", host="fake-lan", type="snmp"),
    ]


@pytest_asyncio.fixture
async def fake_http_client():
    """httpx client whose every request is answered by the fake LAN app."""
    from tests.mocks.fake_ollama import app as fake_app

    async with AsyncClient(transport=ASGITransport(app=fake_app), base_url="http://fake-lan") as client:
        yield client


@pytest_asyncio.fixture
async def app_with_db(db_engine, session_factory, fake_http_client, fake_targets):
    """FastAPI app wired to the in-memory test database and the fake LAN."""
    import lanmon.core.database as db_module

    # Patch the module-level engine and session factory
    original_engine = db_module.engine
    original_session = db_module.async_session
    db_module.engine = db_engine
    db_module.async_session = session_factory

    from lanmon.main import app
    from lanmon.services.alerts import AlertRecorder
    from lanmon.services.chat_relay import ChatRelay
    from lanmon.services.checks import CheckRunner
    from lanmon.services.history import HistoryStore
    from lanmon.services.monitor import ServiceMonitor
    from tests.mocks.fake_redis import FakeRedis

    app.state.monitor = ServiceMonitor(
        targets=fake_targets,
        runner=CheckRunner(fake_http_client, http_timeout_ms=1000),
        history=HistoryStore(),
        alerts=AlertRecorder(),
        gpu_reader=StubGpuReader(),
    )
    app.state.chat_relay = ChatRelay(agents=["siegbert", "eugene"], client=FakeRedis())

    yield app

    db_module.engine = original_engine
    db_module.async_session = original_session


@pytest_asyncio.fixture
async def client(app_with_db):
    """Async HTTP client against the app (no lifespan: state is wired by the fixture)."""
    transport = ASGITransport(app=app_with_db)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
