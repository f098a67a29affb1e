"""
Prometheus exporter package for the Sungrow EyeM4 (WiNet-S) dongle.

Opens one WebSocket session to the dongle per scrape, queries state,
realtime and DC data, and renders the readings as Prometheus exposition
text served at GET /metrics.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""
