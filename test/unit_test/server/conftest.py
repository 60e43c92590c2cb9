from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def client(service) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, wired to the in-memory timeline service.

    ASGITransport does not run the lifespan, so the service is attached to
    ``app.state`` directly.
    """
    from agent_timeline.server.main import app

    app.state.timeline_service = service
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        del app.state.timeline_service
