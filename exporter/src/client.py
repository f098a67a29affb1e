"""
WebSocket client for the Sungrow EyeM4 / WiNet-S dongle.

Defines the ``DeviceClient`` capability the collector depends on and the
concrete ``EyeM4Client`` that implements it over the dongle's JSON
WebSocket API (``ws://<host>:8082/ws/home/overview``).

Every request is a JSON object carrying ``lang``, ``token`` and ``service``;
every reply wraps its payload as::

    {"result_code": 1, "result_msg": "success", "result_data": {...}}

Any other ``result_code`` is a protocol error. Requests are strictly
sequential on one socket: send, then wait for the matching reply.

CHANGELOG:
- 2026-10-14: Raise DeviceConnectionError on per-request receive timeout (STORY-006)
- 2026-10-13: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

import aiohttp

from exporter.src.models import DCData, DeviceList, DeviceState, RealtimeData

if TYPE_CHECKING:
    from exporter.src.config import ExporterSettings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_WS_PORT: int = 8082
WS_PATH: str = "/ws/home/overview"
LANG: str = "en_us"
RESULT_OK: int = 1


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class DeviceError(Exception):
    """Base class for failures talking to the dongle."""


class DeviceConnectionError(DeviceError):
    """The session could not be opened or was lost mid-request."""


class DeviceProtocolError(DeviceError):
    """The dongle answered a request with a non-success result code.

    Args:
        service: Name of the service that failed.
        message: ``result_msg`` from the reply, if any.
    """

    def __init__(self, service: str, message: str | None) -> None:
        self.service = service
        self.result_msg = message
        super().__init__(f"{service} failed: {message or 'unknown error'}")


class DeviceAuthError(DeviceProtocolError):
    """Login was rejected."""


# ---------------------------------------------------------------------------
# Capability
# ---------------------------------------------------------------------------


class DeviceClient(Protocol):
    """Operations the collector needs from a dongle session.

    ``connect`` returns once the session is ready and raises on a
    session-level error; errors after that are raised from whichever call
    is pending.
    """

    async def connect(self) -> None: ...

    async def authenticate(self) -> None: ...

    async def get_state(self) -> DeviceState: ...

    async def get_device_list(self) -> DeviceList: ...

    async def get_device_realtime_data(self, device_id: int | str) -> RealtimeData: ...

    async def get_device_dc_data(self, device_id: int | str) -> DCData: ...

    async def disconnect(self) -> None: ...


ClientFactory = Callable[[str], DeviceClient]
"""Builds a fresh, unconnected client for a dongle host."""


# ---------------------------------------------------------------------------
# EyeM4 implementation
# ---------------------------------------------------------------------------


class EyeM4Client:
    """One-shot WebSocket session to an EyeM4 dongle.

    Not reusable: create one per collection, ``connect``, query, then
    ``disconnect``.

    Args:
        host: Dongle IP address or hostname.
        port: WebSocket port (default 8082).
        username: Login user.
        password: Login password.
        request_timeout_s: Seconds to wait for each reply.
    """

    def __init__(
        self,
        host: str,
        *,
        port: int = DEFAULT_WS_PORT,
        username: str = "admin",
        password: str = "pw8888",
        request_timeout_s: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._request_timeout_s = request_timeout_s
        self._token: str = ""
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None

    @property
    def url(self) -> str:
        return f"ws://{self._host}:{self._port}{WS_PATH}"

    @property
    def token(self) -> str:
        return self._token

    async def connect(self) -> None:
        """Open the WebSocket and obtain a session token.

        Raises:
            DeviceConnectionError: The socket could not be opened or the
                handshake reply was unusable.
            DeviceProtocolError: The dongle refused the ``connect`` service.
        """
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=None, connect=self._request_timeout_s)
        )
        try:
            self._ws = await self._session.ws_connect(self.url)
        except (aiohttp.ClientError, TimeoutError) as exc:
            await self.disconnect()
            raise DeviceConnectionError(f"Failed to connect to {self.url}: {exc}") from exc

        data = await self._request("connect")
        self._token = str(data.get("token", ""))
        logger.debug("Connected to %s", self.url)

    async def authenticate(self) -> None:
        """Log in with the configured credentials.

        Raises:
            DeviceAuthError: The dongle rejected the credentials.
        """
        try:
            data = await self._request(
                "login",
                username=self._username,
                passwd=self._password,
            )
        except DeviceProtocolError as exc:
            raise DeviceAuthError(exc.service, exc.result_msg) from exc
        self._token = str(data.get("token", self._token))

    async def get_state(self) -> DeviceState:
        return DeviceState.model_validate(await self._request("state"))

    async def get_device_list(self) -> DeviceList:
        data = await self._request("devicelist", type="0", is_check_token="0")
        return DeviceList.model_validate(data)

    async def get_device_realtime_data(self, device_id: int | str) -> RealtimeData:
        data = await self._request("real", dev_id=str(device_id))
        return RealtimeData.model_validate(data)

    async def get_device_dc_data(self, device_id: int | str) -> DCData:
        data = await self._request("direct", dev_id=str(device_id))
        return DCData.model_validate(data)

    async def disconnect(self) -> None:
        """Close the socket and HTTP session. Safe to call more than once."""
        ws, self._ws = self._ws, None
        session, self._session = self._session, None
        try:
            if ws is not None and not ws.closed:
                await ws.close()
        finally:
            if session is not None and not session.closed:
                await session.close()

    # -- internals --

    async def _request(self, service: str, **params: Any) -> dict[str, Any]:
        """Send one service request and return its ``result_data``.

        Raises:
            DeviceConnectionError: Not connected, socket closed, timeout, or
                a non-JSON reply.
            DeviceProtocolError: ``result_code`` is not success.
        """
        if self._ws is None or self._ws.closed:
            raise DeviceConnectionError(f"Not connected (service={service})")

        payload = {"lang": LANG, "token": self._token, "service": service, **params}
        try:
            await self._ws.send_json(payload)
            msg = await self._ws.receive(timeout=self._request_timeout_s)
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise DeviceConnectionError(f"{service} request failed: {exc}") from exc
        except TimeoutError as exc:
            raise DeviceConnectionError(
                f"{service} request timed out after {self._request_timeout_s}s"
            ) from exc

        if msg.type != aiohttp.WSMsgType.TEXT:
            raise DeviceConnectionError(
                f"Unexpected WebSocket message for {service}: {msg.type.name}"
            )

        try:
            body = json.loads(msg.data)
        except json.JSONDecodeError as exc:
            raise DeviceConnectionError(f"Malformed reply to {service}") from exc
        if not isinstance(body, dict):
            raise DeviceConnectionError(f"Malformed reply to {service}")

        if body.get("result_code") != RESULT_OK:
            raise DeviceProtocolError(service, body.get("result_msg"))

        return body.get("result_data") or {}


def eyem4_client_factory(settings: ExporterSettings) -> ClientFactory:
    """Return a factory building ``EyeM4Client`` instances from *settings*."""

    def _build(host: str) -> DeviceClient:
        return EyeM4Client(
            host,
            port=settings.ws_port,
            username=settings.username,
            password=settings.password,
            request_timeout_s=settings.request_timeout_s,
        )

    return _build
