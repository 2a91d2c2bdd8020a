"""
Travel Planner API entry point
Run with: python server.py [--host HOST] [--port PORT]
"""

import logging
import sys

from config import HttpConfig, get_environment_mode

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


def cli_entry():
    """Entry point for console script"""
    import argparse

    http_config = HttpConfig.from_environment()

    parser = argparse.ArgumentParser(description="Travel Planner API")
    parser.add_argument('--version', '-v', action='store_true', help='Show version')
    parser.add_argument('--port', type=int, default=http_config.port,
                        help=f'Port to listen on (default: {http_config.port})')
    parser.add_argument('--host', type=str, default=http_config.host,
                        help=f'Host to bind to (default: {http_config.host})')

    args = parser.parse_args()

    if args.version:
        print(f"travel-planner-api version {__version__}")
        sys.exit(0)

    from transport.http import run_http_server
    logger.info(f"Starting in {get_environment_mode()} mode on {args.host}:{args.port}")
    run_http_server(host=args.host, port=args.port)


if __name__ == "__main__":
    cli_entry()
