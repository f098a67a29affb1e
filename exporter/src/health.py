"""
Collection health tracking and the GET /health endpoint.

``CollectionHealth`` keeps the outcome of the most recent collections in
memory:
- last_success_ts: ISO timestamp of the most recent successful collection.
- last_failure_ts: ISO timestamp of the most recent failed collection.
- last_error: Message of the most recent failure (cleared on success).
- consecutive_failures: Failures since the last success.

GET /health reports this state with HTTP 200 and needs no device access, so
Docker HEALTHCHECK can use it without triggering a collection.

CHANGELOG:
- 2026-10-15: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


class CollectionHealth:
    """In-memory record of recent collection outcomes."""

    def __init__(self) -> None:
        self._last_success_ts: str | None = None
        self._last_failure_ts: str | None = None
        self._last_error: str | None = None
        self._consecutive_failures: int = 0

    def record_success(self) -> None:
        """Record a successful collection."""
        self._last_success_ts = datetime.now(tz=UTC).isoformat()
        self._last_error = None
        self._consecutive_failures = 0

    def record_failure(self, error: BaseException) -> None:
        """Record a failed collection.

        Args:
            error: The exception that ended the collection.
        """
        self._last_failure_ts = datetime.now(tz=UTC).isoformat()
        self._last_error = str(error)
        self._consecutive_failures += 1

    def snapshot(self) -> dict[str, Any]:
        return {
            "last_success_ts": self._last_success_ts,
            "last_failure_ts": self._last_failure_ts,
            "last_error": self._last_error,
            "consecutive_failures": self._consecutive_failures,
        }


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """Return liveness plus the latest collection outcome.

    Returns:
        dict: ``{"status": "ok", ...}`` with the CollectionHealth snapshot.
    """
    return {"status": "ok", **request.app.state.health.snapshot()}
