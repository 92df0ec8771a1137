"""Development entrypoint for the Tianming HTTP API."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from tianming.api.app import app
from tianming.config import get_settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Tianming API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host interface to bind")
    parser.add_argument("--port", type=int, default=8000, help="TCP port to listen on")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable autoreload (dev mode)",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    args = parser.parse_args()

    level = (args.log_level or get_settings().log_level).upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.reload:
        uvicorn.run(
            "tianming.api.app:app",
            host=args.host,
            port=args.port,
            reload=True,
            factory=False,
        )
    else:
        uvicorn.run(app, host=args.host, port=args.port, reload=False, factory=False)


if __name__ == "__main__":
    main()
