#!/usr/bin/env python3
"""Serve the sync control API and webhook endpoint with uvicorn.

Usage:
    python scripts/run_server.py [--config CONFIG_PATH] [--host HOST] [--port PORT]
"""

import argparse
import sys

import structlog
import uvicorn

from metafield_sync.api.app import create_app
from metafield_sync.utils.config_loader import ConfigLoader, ConfigurationError
from metafield_sync.utils.logging_config import configure_logging

log = structlog.stdlib.get_logger()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the metafield sync HTTP server")
    parser.add_argument("--config", type=str, default=None, help="Path to configuration file")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    args = parser.parse_args()

    try:
        config_loader = ConfigLoader()
        config = config_loader.load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    configure_logging(
        log_level=config.logging.log_level,
        json_logs=config.logging.json_logs,
        log_file=config.logging.log_file,
    )
    config_loader.validate_config(config)

    log.info("starting_server", host=args.host, port=args.port)
    # A single worker: progress state and the running-sync guard live in-process
    uvicorn.run(create_app(config), host=args.host, port=args.port, workers=1, log_config=None)


if __name__ == "__main__":
    main()
