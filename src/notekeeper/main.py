#!/usr/bin/env python
"""Main entry point for the notekeeper MCP server."""
import argparse
import logging
import os
import sys

from notekeeper.config import config
from notekeeper.observability import configure_logging
from notekeeper.server.mcp_server import NotekeeperMcpServer


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Notekeeper MCP Server")
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=config.log_level,
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotated log files",
        type=str,
        default=os.environ.get("NOTEKEEPER_LOG_DIR"),
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Run the notekeeper MCP server."""
    args = parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_dir = configure_logging(log_dir=args.log_dir or config.log_dir, level=log_level)
    except OSError as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    try:
        logger.info("Starting notekeeper MCP server")
        server = NotekeeperMcpServer()
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
