from __future__ import annotations

import argparse
import logging
from typing import List, Optional

import uvicorn

from sse_hub.config import HubConfig
from sse_hub.utils.log import setup_logging
from sse_hub.web.main import create_app


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve the SSE event hub")
    parser.add_argument("--host", type=str, default=None, help="Bind address (env SSE_HUB_HOST)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (env SSE_HUB_PORT)")
    parser.add_argument(
        "--heartbeat",
        type=float,
        default=None,
        help="Seconds between heartbeat events, 0 disables (env SSE_HUB_HEARTBEAT_SECS)",
    )
    parser.add_argument("--log-level", type=str, default=None, help="debug|info|warning|error")
    return parser


def config_from_args(args: argparse.Namespace) -> HubConfig:
    cfg = HubConfig()
    if args.host is not None:
        cfg.host = args.host
    if args.port is not None:
        cfg.port = args.port
    if args.heartbeat is not None:
        cfg.heartbeat_secs = args.heartbeat
    if args.log_level is not None:
        cfg.log_level = args.log_level
    return cfg


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    cfg = config_from_args(args)
    setup_logging(cfg.log_level)

    base = f"http://localhost:{cfg.port}"
    logger.info("Server starting on port %d", cfg.port)
    logger.info("SSE endpoint: %s/events", base)
    logger.info("Trigger endpoint: %s/trigger", base)
    logger.info("Health endpoint: %s/health", base)

    # uvicorn exits the process if the port cannot be bound.
    uvicorn.run(create_app(cfg), host=cfg.host, port=cfg.port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
