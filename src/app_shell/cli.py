import argparse
import logging
import os
import sys

from src.adapters.sqlite.migrator import DEFAULT_MIGRATIONS_DIR, SQLiteMigrator
from src.app_shell.config import ConfigError, Settings, load_settings
from src.app_shell.logging_config import configure_logging

logger = logging.getLogger("cli")


def get_settings() -> Settings:
    try:
        return load_settings()
    except ConfigError as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def handle_migrate(settings: Settings) -> None:
    db_path = settings.database.path
    db_dir = os.path.dirname(db_path)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    migrator = SQLiteMigrator(db_path, settings.database.migrations_dir or DEFAULT_MIGRATIONS_DIR)
    applied = migrator.run_migrations()
    if applied:
        print(f"Applied {len(applied)} migration(s) to {db_path}:")
        for name in applied:
            print(f" - {name}")
    else:
        print(f"Database {db_path} is up to date.")


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=args.host or settings.application.host,
        port=args.port or settings.application.port,
        reload=args.reload,
        log_level=settings.logging.level.lower(),
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Mailing List CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.add_argument("--host", help="Bind address (default from configuration)")
    serve_parser.add_argument("--port", type=int, help="Port (default from configuration)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.logging.level)

    if args.command == "migrate":
        handle_migrate(settings)
    elif args.command == "serve":
        handle_serve(settings, args)


if __name__ == "__main__":
    main()
