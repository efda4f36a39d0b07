"""Run the tanklink server: ``python -m tanklink``."""

from __future__ import annotations

import argparse
import logging

from aiohttp import web

from tanklink.config import TankLinkConfig
from tanklink.exceptions import TankLinkConfigError
from tanklink.service import TankLinkService


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tank telemetry ingestion and liveness server")
    parser.add_argument("--host", default=None, help="Bind address (default: TANKLINK_HTTP_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: TANKLINK_HTTP_PORT, PORT or 3000)")
    parser.add_argument("--config-path", default=None, help="JSON file holding the tank calibration snapshot")
    parser.add_argument("--mqtt", action="store_true", help="Also ingest from the MQTT broker")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Root log level",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, object] = {}
    if args.host:
        overrides["http_host"] = args.host
    if args.port is not None:
        overrides["http_port"] = args.port
    if args.config_path:
        overrides["config_path"] = args.config_path
    if args.mqtt:
        overrides["mqtt_enabled"] = True

    try:
        config = TankLinkConfig.from_env(**overrides)
    except TankLinkConfigError as exc:
        logging.getLogger(__name__).error("Invalid configuration: %s", exc)
        return 2

    service = TankLinkService(config)
    web.run_app(service.create_app(), host=config.http_host, port=config.http_port, print=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
