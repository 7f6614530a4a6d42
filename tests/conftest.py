from collections.abc import AsyncIterator

import anyio
import httpx
import pytest
from starlette.applications import Starlette

from gmaps_mcp.app import AppState, create_server, maps_lifespan
from gmaps_mcp.config import Settings
from gmaps_mcp.context import RequestContext
from gmaps_mcp.providers import GoogleMapsClient
from gmaps_mcp.runner import ServerRunner
from gmaps_mcp.transport.router import RequestRouter
from gmaps_mcp.transport.session_manager import SessionManager
from gmaps_mcp.transport.starlette import create_starlette_app
from tests.test_helpers import API_KEY, EIFFEL_TOWER_GEOCODE, FakeGoogle, RecordingSink


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(google_maps_api_key=API_KEY, _env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def google() -> FakeGoogle:
    fake = FakeGoogle()
    fake.respond("/maps/api/geocode/json", EIFFEL_TOWER_GEOCODE)
    return fake


@pytest.fixture
async def http_client(google: FakeGoogle) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(google)) as client:
        yield client


@pytest.fixture
async def maps(http_client: httpx.AsyncClient) -> AsyncIterator[GoogleMapsClient]:
    async with GoogleMapsClient(API_KEY, http_client=http_client) as client:
        yield client


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def tool_ctx(maps: GoogleMapsClient, sink: RecordingSink) -> RequestContext:
    return RequestContext(server_state=AppState(maps=maps), session=None, request_id=1, _sink=sink)


@pytest.fixture
async def router(settings: Settings, http_client: httpx.AsyncClient) -> AsyncIterator[RequestRouter]:
    """A RequestRouter over the real server, without any HTTP framework."""
    runner = ServerRunner(create_server(), lifespan=maps_lifespan(settings, http_client))
    async with runner.run() as running:
        async with anyio.create_task_group() as tg:
            sessions = SessionManager(running)
            yield RequestRouter(sessions, tg)
            sessions.destroy_all()
            tg.cancel_scope.cancel()


@pytest.fixture
async def app(settings: Settings, http_client: httpx.AsyncClient) -> AsyncIterator[Starlette]:
    """The Starlette app with its lifespan state set up by hand."""
    server = create_server()
    lifespan = maps_lifespan(settings, http_client)
    starlette_app = create_starlette_app(server, lifespan=lifespan, path=settings.mcp_path)

    # httpx ASGITransport doesn't trigger lifespan, so we do it manually
    runner = ServerRunner(server, lifespan=lifespan)
    async with runner.run() as running:
        async with anyio.create_task_group() as tg:
            sessions = SessionManager(running)
            starlette_app.state.router = RequestRouter(sessions, tg)
            yield starlette_app
            sessions.destroy_all()
            tg.cancel_scope.cancel()


@pytest.fixture
async def client(app: Starlette) -> AsyncIterator[httpx.AsyncClient]:
    """Create an httpx client with the Starlette app."""
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
