"""
Shared test fixtures for exporter tests.

Provides environment isolation for ExporterSettings and a mocked
DeviceClient preloaded with a small but realistic dongle: one inverter with
one numeric and one placeholder realtime reading, and two DC inputs.

CHANGELOG:
- 2026-10-13: Add device_client fixture (STORY-005)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from exporter.src.models import DCData, DeviceList, DeviceState, RealtimeData

# All ExporterSettings environment variable names, used for cleanup.
_ALL_EXPORTER_ENV_VARS = (
    "EYEM4_IP",
    "EYEM4_LISTEN_HOST",
    "EYEM4_LISTEN_PORT",
    "EYEM4_TIMEOUT_MS",
    "EYEM4_WS_PORT",
    "EYEM4_USERNAME",
    "EYEM4_PASSWORD",
    "EYEM4_REQUEST_TIMEOUT_S",
)


@pytest.fixture(autouse=True)
def _clean_exporter_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all exporter env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_EXPORTER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


def make_device_client(
    *,
    state: dict | None = None,
    devices: list[dict] | None = None,
    realtime: dict[str, list[dict]] | None = None,
    dc: list[dict] | None = None,
) -> AsyncMock:
    """Create a mocked DeviceClient returning the given raw payloads.

    Args:
        state: ``state`` result_data.
        devices: ``devicelist`` entries.
        realtime: Realtime item lists keyed by ``str(device_id)``.
        dc: ``direct`` entries for the DC device.
    """
    if state is None:
        state = {"total_alarm": 2, "total_fault": 0}
    if devices is None:
        devices = [
            {
                "dev_id": 1,
                "dev_type": 35,
                "dev_sn": "A2231234567",
                "dev_name": "SH5.0RT(COM1-001)",
                "dev_model": "SH5.0RT",
                "port_name": "COM1",
            }
        ]
    if realtime is None:
        realtime = {
            "1": [
                {"data_name": "temp", "data_value": "25.3", "data_unit": "℃"},
                {"data_name": "Running State", "data_value": "--", "data_unit": ""},
            ]
        }
    if dc is None:
        dc = [
            {"name": "MPPT1", "voltage": "48.2", "current": "NaN"},
        ]

    async def _realtime(device_id: int | str) -> RealtimeData:
        return RealtimeData.model_validate({"list": realtime.get(str(device_id), [])})

    client = AsyncMock()
    client.connect = AsyncMock(return_value=None)
    client.authenticate = AsyncMock(return_value=None)
    client.get_state = AsyncMock(return_value=DeviceState.model_validate(state))
    client.get_device_list = AsyncMock(
        return_value=DeviceList.model_validate({"count": len(devices), "list": devices})
    )
    client.get_device_realtime_data = AsyncMock(side_effect=_realtime)
    client.get_device_dc_data = AsyncMock(return_value=DCData.model_validate({"list": dc}))
    client.disconnect = AsyncMock(return_value=None)
    return client


@pytest.fixture()
def device_client() -> AsyncMock:
    """A mocked DeviceClient with the default dongle payloads."""
    return make_device_client()


@pytest.fixture()
def make_client():
    """Return the make_device_client builder for tests needing custom payloads."""
    return make_device_client
