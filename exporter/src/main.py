"""
Command-line entrypoint for the Sungrow EyeM4 exporter.

Commands:
- ``serve``: validate options, build the FastAPI app and serve
  Prometheus metrics at /metrics via uvicorn.
- ``help`` (also the default for a missing or unknown command): print usage.

Options for ``serve`` override the matching ``EYEM4_*`` environment
variables. An invalid IP, listen port or timeout is reported on stderr and
the server is not started.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-16: Accept --timeout for the collection deadline (STORY-011)
- 2026-10-14: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from datetime import UTC, datetime

from pydantic import ValidationError

from exporter.src.config import ExporterSettings

logger = logging.getLogger(__name__)

USAGE = """\
Sungrow EyeM4 Exporter

  A Prometheus exporter for the Sungrow EyeM4 Dongle.

Usage

  $ eyem4-exporter <options> <command>

Command List

  help     Print this usage guide.
  serve    Serves prometheus style metrics at /metrics

Options

  --ip string            IP address of the dongle. (e.g: 192.168.1.175)
  --timeout string       Timeout in milliseconds for querying the dongle. (e.g: 10000)
  --listen-port string   Port the exporter will listen on. (e.g: 8080)
"""


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for the exporter.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def log_config_summary(settings: ExporterSettings) -> None:
    """Log the effective configuration at startup, omitting the password."""
    logger.info(
        "Exporter starting with config: ip=%s, ws_port=%s, username=%s, "
        "listen_host=%s, listen_port=%s, timeout_ms=%s, request_timeout_s=%s",
        settings.ip,
        settings.ws_port,
        settings.username,
        settings.listen_host,
        settings.listen_port,
        settings.timeout_ms,
        settings.request_timeout_s,
    )


# ---------------------------------------------------------------------------
# Argument handling
# ---------------------------------------------------------------------------


def show_usage() -> None:
    print(USAGE)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Numeric options are kept as strings so invalid values can be reported
    with the exporter's own messages instead of argparse's.
    """
    p = argparse.ArgumentParser(prog="eyem4-exporter", add_help=False)
    p.add_argument("command", nargs="?", default=None)
    p.add_argument("--ip", default=None)
    p.add_argument("--listen-port", dest="listen_port", default=None)
    p.add_argument("--timeout", default=None)
    return p.parse_args(argv)


def build_settings(args: argparse.Namespace) -> ExporterSettings | None:
    """Validate ``serve`` options and merge them over the environment.

    Prints the reason to stderr and returns None when the options are
    invalid.
    """
    overrides: dict[str, object] = {}

    if args.listen_port is not None:
        if not args.listen_port.strip().isdigit():
            print("Invalid Listen Port", file=sys.stderr)
            return None
        overrides["listen_port"] = int(args.listen_port)

    if args.timeout is not None:
        if not args.timeout.strip().isdigit():
            print("Invalid Timeout", file=sys.stderr)
            return None
        overrides["timeout_ms"] = int(args.timeout)

    if args.ip is not None:
        overrides["ip"] = args.ip

    try:
        settings = ExporterSettings(**overrides)
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return None

    if not settings.ip:
        print("Invalid IP", file=sys.stderr)
        return None

    return settings


def serve(settings: ExporterSettings) -> None:
    """Serve /metrics until interrupted."""
    import uvicorn

    from exporter.src.app import create_app

    log_config_summary(settings)
    app = create_app(settings)
    logger.info("Listening on port %d", settings.listen_port)
    uvicorn.run(app, host=settings.listen_host, port=settings.listen_port, log_config=None)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main(argv: Sequence[str] | None = None) -> int:
    """Run the requested command and return the process exit code."""
    args = parse_args(argv)

    if args.command != "serve":
        show_usage()
        return 0

    configure_logging()
    settings = build_settings(args)
    if settings is None:
        return 1

    serve(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
