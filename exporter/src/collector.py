"""
One collection: a single EyeM4 session turned into a metrics document.

``CollectionSession.run`` drives the device client through a fixed plan and
tracks its progress in an explicit ``SessionState``:

1. ``connecting``: open the session.
2. ``authenticating``: log in.
3. ``querying``: state totals, then every device's realtime data, then DC
   data for the fixed DC device.
4. ``done`` / ``failed``.

The document is returned only if every step succeeds; any error aborts the
plan and propagates unchanged, so no partial document is ever produced.
The client is disconnected on every exit path.

``collect_metrics`` is the entry point used by the HTTP layer: it builds a
fresh client and session and runs them under the collection deadline.

CHANGELOG:
- 2026-10-15: Disconnect on failure and cancellation paths as well (STORY-009)
- 2026-10-13: Initial creation (STORY-005)

TODO:
- Query DC data for every device in the device list instead of
  DC_DEVICE_ID only, once multi-inverter setups can be tested.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from exporter.src.guard import run_with_deadline
from exporter.src.metrics import MetricKind, as_number, format_metric

if TYPE_CHECKING:
    from exporter.src.client import ClientFactory, DeviceClient
    from exporter.src.models import CollectionConfig, Device

logger = logging.getLogger(__name__)

DC_DEVICE_ID: int = 1
"""Device whose DC inputs are queried; also used as its ``device_id`` label."""


class SessionState(str, Enum):
    """Lifecycle of one collection session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    QUERYING = "querying"
    DONE = "done"
    FAILED = "failed"


def _device_labels(ip: str, device: Device) -> dict[str, object]:
    return {
        "ip": ip,
        "device_id": device.id,
        "device_type": device.dev_type,
        "device_sn": device.dev_sn,
        "device_name": device.dev_name,
        "device_model": device.dev_model,
        "device_port_name": device.port_name,
    }


class CollectionSession:
    """Runs the fixed query plan against one device client.

    Single use: ``run`` may be awaited once.

    Args:
        config: Per-request collection config (endpoint used as ``ip`` label).
        client: Fresh, unconnected device client.
    """

    def __init__(self, config: CollectionConfig, client: DeviceClient) -> None:
        self._config = config
        self._client = client
        self.state: SessionState = SessionState.IDLE

    @property
    def ip(self) -> str:
        return self._config.endpoint

    def _transition(self, state: SessionState) -> None:
        logger.debug("Session %s: %s -> %s", self.ip, self.state.value, state.value)
        self.state = state

    async def run(self) -> str:
        """Execute the plan and return the newline-joined metric document.

        Raises:
            RuntimeError: ``run`` was already called on this session.
            Exception: Any error raised by the device client, unchanged.
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Session already {self.state.value}")

        lines: list[str] = []
        try:
            self._transition(SessionState.CONNECTING)
            await self._client.connect()

            self._transition(SessionState.AUTHENTICATING)
            await self._client.authenticate()

            self._transition(SessionState.QUERYING)
            lines.extend(await self._collect_state())
            lines.extend(await self._collect_realtime())
            lines.extend(await self._collect_dc())
        except Exception:
            self._transition(SessionState.FAILED)
            raise
        finally:
            await self._close()

        self._transition(SessionState.DONE)
        logger.info("Collected %d metrics from %s", len(lines), self.ip)
        return "\n".join(lines)

    async def _close(self) -> None:
        try:
            await self._client.disconnect()
        except Exception:
            logger.warning("Failed to disconnect from %s", self.ip, exc_info=True)

    # -- query steps --

    async def _collect_state(self) -> list[str]:
        state = await self._client.get_state()
        labels = {"ip": self.ip}
        return [
            format_metric("state_total_alarm", MetricKind.GAUGE, labels, state.total_alarm),
            format_metric("state_total_fault", MetricKind.GAUGE, labels, state.total_fault),
        ]

    async def _collect_realtime(self) -> list[str]:
        lines: list[str] = []
        devices = await self._client.get_device_list()
        for device in devices.items:
            response = await self._client.get_device_realtime_data(device.id)
            labels = _device_labels(self.ip, device)
            for item in response.items:
                value = as_number(item.data_value)
                if value is None:
                    continue
                lines.append(
                    format_metric(
                        f"realtime_data_{item.data_name}",
                        MetricKind.GAUGE,
                        labels,
                        value,
                    )
                )
        return lines

    async def _collect_dc(self) -> list[str]:
        lines: list[str] = []
        response = await self._client.get_device_dc_data(DC_DEVICE_ID)
        labels = {"ip": self.ip, "device_id": DC_DEVICE_ID}
        for item in response.items:
            metric_name = f"dc_data_{item.name}"
            voltage = as_number(item.voltage)
            if voltage is not None:
                lines.append(
                    format_metric(f"{metric_name}_voltage", MetricKind.GAUGE, labels, voltage)
                )
            current = as_number(item.current)
            if current is not None:
                lines.append(
                    format_metric(f"{metric_name}_current", MetricKind.GAUGE, labels, current)
                )
        return lines


async def collect_metrics(config: CollectionConfig, client_factory: ClientFactory) -> str:
    """Run one deadline-guarded collection against ``config.endpoint``.

    Args:
        config: Endpoint and deadline for this collection.
        client_factory: Builds a fresh device client for the endpoint.

    Returns:
        The metrics document.

    Raises:
        CollectionTimeoutError: The deadline elapsed first.
        Exception: Any device or protocol error, unchanged.
    """
    session = CollectionSession(config, client_factory(config.endpoint))
    return await run_with_deadline(session.run, config.timeout_s)
