"""
pkgvault CLI — Database bootstrap and server commands.

Commands:
- pkgvault init-db  — Create all tables in the configured database
- pkgvault serve    — Run the API under uvicorn
- pkgvault check    — Validate pkgvault.yaml and database connectivity
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional

logger = logging.getLogger("pkgvault.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="pkgvault",
        description="pkgvault — Packages and artifacts over HTTP",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.add_argument(
        "--config", default=None, help="Path to pkgvault.yaml (default: auto-discover)"
    )

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument(
        "--config", default=None, help="Path to pkgvault.yaml (default: auto-discover)"
    )
    serve_parser.add_argument("--host", default=None, help="Host to bind (default: server.host)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: server.port)")

    check_parser = subparsers.add_parser("check", help="Validate config and DB connectivity")
    check_parser.add_argument(
        "--config", default=None, help="Path to pkgvault.yaml (default: auto-discover)"
    )

    args = parser.parse_args(argv)

    if args.command == "init-db":
        return cmd_init_db(args)
    elif args.command == "serve":
        return cmd_serve(args)
    elif args.command == "check":
        return cmd_check(args)
    else:
        parser.print_help()
        return 0


def _load(args: argparse.Namespace):
    from pkgvault.engine.config import load_config
    from pkgvault.engine.errors import ConfigError

    try:
        return load_config(args.config)
    except ConfigError as e:
        print(f"[ERROR] {e.message}")
        for err in e.context.get("validation_errors") or []:
            print(f"  - {'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}")
        return None


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create every table. Safe to re-run."""
    from sqlalchemy.exc import SQLAlchemyError

    from pkgvault.db.session import Database

    config = _load(args)
    if config is None:
        return 1

    db = Database(config.database)
    try:
        db.create_all()
    except SQLAlchemyError as e:
        print(f"[ERROR] Failed to create tables: {e}")
        return 1
    finally:
        db.dispose()

    print(f"[OK] Tables ready: {db!r}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the API with uvicorn."""
    import uvicorn

    from pkgvault.api.app import create_app

    config = _load(args)
    if config is None:
        return 1

    app = create_app(config)
    uvicorn.run(
        app,
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_level=config.logging.level.lower(),
    )
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Validate configuration and try a connection."""
    from pkgvault.db.session import Database

    config = _load(args)
    if config is None:
        return 1
    print(f"[OK] Config valid (environment={config.environment})")

    db = Database(config.database)
    try:
        healthy = db.health_check()
    finally:
        db.dispose()

    if not healthy:
        print(f"[ERROR] Cannot connect: {db!r}")
        return 1
    print(f"[OK] Connected: {db!r}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
