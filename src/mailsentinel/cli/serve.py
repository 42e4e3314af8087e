"""Run the gateway under uvicorn."""

from __future__ import annotations

import argparse

import uvicorn
from loguru import logger

from mailsentinel.infrastructure import configure_logging, get_settings


def main() -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(prog="mail-sentinel", description="Mail Sentinel IMAP Proxy")
    parser.add_argument("--host", default=None, help="bind host (default: API_HOST)")
    parser.add_argument("--port", type=int, default=None, help="bind port (default: PORT / API_PORT)")
    parser.add_argument("--log-level", default=None, help="log level (default: LOG_LEVEL)")
    args = parser.parse_args()

    level = args.log_level or settings.log_level
    configure_logging(level)

    host = args.host or settings.api_host
    port = args.port or settings.api_port
    logger.info(f"{settings.app_name} running on {host}:{port}")

    from mailsentinel.api.main import app

    uvicorn.run(app, host=host, port=port, log_level=level.lower(), log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
