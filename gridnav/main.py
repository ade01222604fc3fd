from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

import uvicorn

from .app import app
from .config import LOG_FORMAT, WORKER_HOST, WORKER_LOG_LEVEL, WORKER_PORT

logger = logging.getLogger(__name__)

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def build_parser() -> argparse.ArgumentParser:
    """Command line for the worker; defaults come from GRIDNAV_HOST/PORT/LOG_LEVEL."""
    parser = argparse.ArgumentParser(
        prog="gridnav-worker",
        description="Serve grid conversion, overlay and route endpoints over HTTP.",
    )
    parser.add_argument("--host", default=WORKER_HOST, help="interface to bind")
    parser.add_argument("--port", default=WORKER_PORT, type=int, help="TCP port to listen on")
    parser.add_argument(
        "--log-level",
        default=WORKER_LOG_LEVEL,
        type=str.lower,
        choices=LOG_LEVELS,
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    logger.info("Grid navigation worker listening on http://%s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
