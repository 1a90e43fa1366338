#!/usr/bin/env python3
"""
BikeHub Accounts -- credential and session service for users and administrators.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --reload

Environment variables (or .env):
  APP_SECRET    Required. Token signing secret, at least 32 characters.
  APP_PORT      Listening port when --port is not given (default 3001).
  DATABASE_URL  SQLAlchemy URL (default sqlite:///./bikehub_accounts.db).
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the BikeHub Accounts API server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: APP_PORT)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    # Fails fast on a missing APP_SECRET before uvicorn starts.
    settings = get_settings()
    port = args.port if args.port is not None else settings.app_port
    uvicorn.run("asgi:app", host=args.host, port=port, reload=args.reload)


if __name__ == "__main__":
    main()
