#!/usr/bin/env python3
"""
Ratings service -- users, roles and ratings behind OAuth 2.0 style tokens.

Usage:
  python main.py
  python main.py -v
  python main.py --host 0.0.0.0 --port 8080

Environment variables (see core/config.py for the full list):
  SECRET_KEY      Token signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL    SQLAlchemy URL. Defaults to a SQLite file next to this script.
  ADMIN_EMAIL     Login of the super-admin seeded on first start.
  ADMIN_PASSWORD  Its password. Generated (and only logged with DEBUG=true) when unset.
  DEBUG           true to generate missing secrets for local development.
"""

import argparse
import logging

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="ratingsapp",
        description="Serve the ratings API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py -v --port 9000
  DEBUG=true python main.py
        """,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level, including rejected tokens and error details",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Interface to bind (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="TCP port to listen on (default: 8080)",
    )
    args = parser.parse_args()

    # Imported here so --help works without a configured SECRET_KEY.
    from asgi import app

    if args.verbose:
        logging.getLogger("ratingsapp").setLevel(logging.DEBUG)

    logger = logging.getLogger("ratingsapp.main")
    logger.info("Ratings service starting on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level="debug" if args.verbose else "info")


if __name__ == "__main__":
    main()
