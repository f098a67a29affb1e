"""
Pydantic models for EyeM4 device responses and per-request collection config.

The dongle answers every service call with a ``result_data`` object; the
models below validate the parts the collector reads and ignore everything
else. Telemetry values (``data_value``, ``voltage``, ``current``) are kept
untyped on purpose: the dongle sends numbers, numeric strings and
placeholders such as ``"--"`` in the same field, and the collector decides
per value whether it is exportable.

CHANGELOG:
- 2026-10-13: Accept both ``dev_id`` and ``id`` for device identifiers (STORY-004)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from exporter.src.config import DEFAULT_TIMEOUT_MS

if TYPE_CHECKING:
    from exporter.src.config import ExporterSettings


class DeviceState(BaseModel):
    """Alarm and fault totals reported by the ``state`` service."""

    model_config = ConfigDict(extra="ignore")

    total_alarm: int = 0
    total_fault: int = 0


class Device(BaseModel):
    """One entry of the ``devicelist`` service.

    Attributes:
        id: Device identifier used for per-device queries.
        dev_type: Numeric device type code.
        dev_sn: Device serial number.
        dev_name: Display name.
        dev_model: Model designation (e.g. ``SH5.0RT``).
        port_name: Dongle port the device is attached to.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int | str = Field(validation_alias=AliasChoices("dev_id", "id"))
    dev_type: int | str = ""
    dev_sn: str = ""
    dev_name: str = ""
    dev_model: str = ""
    port_name: str = ""


class DeviceList(BaseModel):
    """Response of the ``devicelist`` service."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    count: int = 0
    items: list[Device] = Field(default_factory=list, validation_alias="list")


class RealtimeDataItem(BaseModel):
    """A single named reading from the ``real`` service."""

    model_config = ConfigDict(extra="ignore")

    data_name: str
    data_value: Any = None
    data_unit: str = ""


class RealtimeData(BaseModel):
    """Response of the ``real`` service for one device."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    items: list[RealtimeDataItem] = Field(default_factory=list, validation_alias="list")


class DCChannelData(BaseModel):
    """Voltage/current pair for one DC input (MPPT string) from ``direct``."""

    model_config = ConfigDict(extra="ignore")

    name: str
    voltage: Any = None
    current: Any = None


class DCData(BaseModel):
    """Response of the ``direct`` service."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    items: list[DCChannelData] = Field(default_factory=list, validation_alias="list")


class CollectionConfig(BaseModel):
    """Inputs for one collection, rebuilt for every HTTP request.

    Attributes:
        endpoint: Dongle IP address or hostname.
        timeout_ms: Collection deadline in milliseconds, or None for no
            deadline.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str
    timeout_ms: int | None = DEFAULT_TIMEOUT_MS

    @property
    def timeout_s(self) -> float | None:
        """Deadline in seconds, or None when disabled."""
        if self.timeout_ms is None:
            return None
        return self.timeout_ms / 1000.0

    @classmethod
    def from_settings(cls, settings: ExporterSettings) -> CollectionConfig:
        """Build a config from server settings; ``timeout_ms=0`` disables the deadline."""
        return cls(
            endpoint=settings.ip,
            timeout_ms=settings.timeout_ms or None,
        )
