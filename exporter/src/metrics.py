"""
Prometheus exposition-format rendering for EyeM4 readings.

Pure functions, no I/O: metric names are sanitized and namespaced under
``eyem4_``, label sets are rendered in the caller's iteration order, and each
metric becomes a ``# TYPE`` line followed by one sample line.

``as_number`` is the single place that decides whether a raw telemetry value
is exportable. The dongle reports placeholders (``"--"``, ``""``, ``null``)
alongside real readings, and the same rules must apply to realtime values,
DC voltages and DC currents.

CHANGELOG:
- 2026-10-14: Escape label values per the exposition format (STORY-007)
- 2026-10-12: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

NAMESPACE = "eyem4"
"""Prefix applied to every exported metric name."""

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


class MetricKind(str, Enum):
    """Prometheus metric types used in ``# TYPE`` lines."""

    GAUGE = "gauge"
    COUNTER = "counter"
    UNTYPED = "untyped"


# ---------------------------------------------------------------------------
# Names and labels
# ---------------------------------------------------------------------------


def sanitize_name(raw: object) -> str:
    """Reduce *raw* to a lower-case ``[a-z0-9_]`` token.

    Every run of characters outside ``[a-z0-9]`` collapses to a single
    underscore and leading/trailing underscores are stripped. Never raises;
    input with no alphanumerics yields an empty string.

    Examples:
        >>> sanitize_name("I18N_COMMON_DAILY  Yield (kWh)")
        'i18n_common_daily_yield_kwh'
    """
    return _NON_ALNUM_RUN.sub("_", str(raw).lower()).strip("_")


def format_metric_name(name: object) -> str:
    """Return the namespaced metric name, e.g. ``eyem4_state_total_alarm``."""
    return f"{NAMESPACE}_{sanitize_name(name)}"


def _escape_label_value(value: object) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def format_labels(labels: Mapping[str, object]) -> str:
    """Render a label set as ``{a="1" b="2"}`` preserving insertion order."""
    rendered = " ".join(
        f'{label}="{_escape_label_value(value)}"' for label, value in labels.items()
    )
    return "{" + rendered + "}"


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def as_number(raw: Any) -> int | float | None:
    """Return *raw* as a number, or None when it is not exportable.

    Accepted: ``int`` and ``float`` (``bool`` excluded) and strings that parse
    as a float once stripped. Rejected: None, empty or blank strings,
    unparseable strings, any other type, and NaN in every spelling.

    Args:
        raw: A telemetry value exactly as received from the dongle.

    Returns:
        The numeric value (strings converted to float), or None.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return None if math.isnan(raw) else raw
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
        return None if math.isnan(value) else value
    return None


def format_value(value: int | float) -> str:
    """Render a sample value; integral values drop the ``.0`` suffix."""
    if isinstance(value, float):
        if math.isinf(value):
            return "+Inf" if value > 0 else "-Inf"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


# ---------------------------------------------------------------------------
# Metric fragments
# ---------------------------------------------------------------------------


def format_metric(
    name: str,
    kind: MetricKind | str,
    labels: Mapping[str, object],
    value: int | float,
) -> str:
    """Render one metric as a ``# TYPE`` line plus a sample line.

    The caller must filter non-numeric values (see :func:`as_number`)
    before calling; NaN is never rendered.

    Args:
        name: Un-namespaced metric name; sanitized here.
        kind: Prometheus metric type.
        labels: Label mapping, rendered in iteration order.
        value: Numeric sample value.

    Returns:
        Two lines joined by ``\\n`` (no trailing newline).
    """
    metric_name = format_metric_name(name)
    kind_text = kind.value if isinstance(kind, MetricKind) else str(kind)
    return "\n".join(
        (
            f"# TYPE {metric_name} {kind_text}",
            f"{metric_name}{format_labels(labels)} {format_value(value)}",
        )
    )
