#!/usr/bin/env python3
"""
Predix -- backend service and migration runner.

Usage:
  python main.py serve                 # run migrations, then serve HTTP on $PORT
  python main.py serve --reload        # development server with auto-reload
  python main.py migrate               # apply db/migrations/*.sql and exit

Environment variables (see core/config.py for the full list):
  DATABASE_URL or DB_HOST / DB_PORT / DB_NAME / DB_USER / DB_PASSWORD
  JWT_SECRET          Session token signing key (>= 32 chars). DEBUG=true generates one.
  PRIVY_APP_ID        Identity provider application id.
  PRIVY_APP_SECRET    Optional. Enables wallet lookup on login.
  PORT                Listen port (default 3000).
"""

import argparse
import logging
import sys


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from core.config import get_settings

    settings = get_settings()
    port = args.port or settings.port
    uvicorn.run(
        "asgi:app",
        host=args.host,
        port=port,
        reload=args.reload,
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
    )
    return 0


def _migrate(args: argparse.Namespace) -> int:
    from db.migrate import main as migrate_main

    return migrate_main()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="predix",
        description="Predix backend: provider login, session tokens and SQL migrations.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run migrations and start the HTTP server")
    serve.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Listen port (default: $PORT or 3000)")
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes (development)")
    serve.set_defaults(func=_serve)

    migrate = sub.add_parser("migrate", help="Apply SQL migrations once and exit")
    migrate.set_defaults(func=_migrate)

    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 2

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
