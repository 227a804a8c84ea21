"""CLI entry point: arranca la API HTTP y el suscriptor MQTT."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from common.config import get_settings
from common.logging_config import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    p = argparse.ArgumentParser(description="Energy telemetry ingest service (MQTT → SQL → HTTP)")
    p.add_argument("--host", default=settings.api_host)
    p.add_argument("--port", type=int, default=settings.api_port)
    p.add_argument("--log-level", default=settings.log_level)
    args = p.parse_args()

    configure_logging(args.log_level)
    logger.info(
        "Starting on %s:%d topic=%s broker=%s:%d",
        args.host,
        args.port,
        settings.mqtt_topic,
        settings.mqtt_broker_host,
        settings.mqtt_broker_port,
    )

    uvicorn.run(
        "energy_api.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
