"""Pytest configuration and shared fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.container import Container, reset_container, set_container
from src.api.dependencies import limiter
from src.domain.ports.config import AppConfig
from src.infrastructure.persistence.memory_gateway import InMemoryGateway
from src.main import app


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
async def container(gateway: InMemoryGateway):
    """Fresh container over an in-memory gateway, installed globally."""
    c = Container(config=AppConfig(), gateway=gateway)
    set_container(c)
    limiter.enabled = False
    yield c
    limiter.enabled = True
    await c.shutdown()
    reset_container()


@pytest.fixture
async def client(container: Container):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
