"""Fixtures for integration tests."""

from collections.abc import AsyncGenerator

import pytest
from aioresponses import aioresponses as aioresponses_cls
from pydantic import SecretStr

from testomat_reporter.client import TestomatClient
from testomat_reporter.config import TestomatConfig
from testomat_reporter.run_store import MemoryRunStore

API_BASE_URL = "http://testomat.test"
REPORTER_URL = f"{API_BASE_URL}/api/reporter"


@pytest.fixture
def config() -> TestomatConfig:
    """Create test configuration."""
    return TestomatConfig(
        api_key=SecretStr(" tstmt_key "),
        url=API_BASE_URL,
        title="Nightly",
        group_title="Release 2.0",
        env="linux",
        colors=False,
    )


@pytest.fixture
def run_store() -> MemoryRunStore:
    """Create an empty run store."""
    return MemoryRunStore()


@pytest.fixture
async def client(
    config: TestomatConfig,
    run_store: MemoryRunStore,
    aioresponses: aioresponses_cls,
) -> AsyncGenerator[TestomatClient, None]:
    """Create client with managed session."""
    async with TestomatClient.from_config(config, run_store=run_store) as impl:
        yield impl
