"""Global pytest fixtures and configuration."""

import sys
from pathlib import Path
from typing import List
from unittest.mock import AsyncMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hupladder.config import LadderConfig  # noqa: E402
from hupladder.models.device import HUPStatus, SupportedVersions  # noqa: E402
from hupladder.models.status import HUPStatusEnum  # noqa: E402

TEST_UUID = "a1b2c3d4e5f60718293a4b5c6d7e8f90"


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_config():
    """Factory for LadderConfig with test defaults."""

    def _make(**overrides):
        values = {"uuid": TEST_UUID, "token": "good-token"}
        values.update(overrides)
        return LadderConfig(**values)

    return _make


@pytest.fixture
def mock_client():
    """Mock BalenaClient: authenticated, idle, online device on the newest 2.0.0."""
    client = AsyncMock()
    client.login_with_token = AsyncMock()
    client.is_authenticated = AsyncMock(return_value=True)
    client.get_device_type = AsyncMock(return_value="raspberrypi4-64")
    client.get_os_version = AsyncMock(return_value="2.0.0")
    client.is_online = AsyncMock(return_value=True)
    client.get_os_update_status = AsyncMock(return_value=HUPStatus())
    client.get_supported_os_update_versions = AsyncMock(
        return_value=SupportedVersions(versions=[], current="2.0.0")
    )
    client.start_os_update = AsyncMock(
        return_value=HUPStatus(status=HUPStatusEnum.IN_PROGRESS)
    )
    return client
