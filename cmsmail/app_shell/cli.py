import argparse
import logging
import sys

from cmsmail.adapters.sqlite.migrator import SQLiteMigrator
from cmsmail.adapters.sqlite_db import SQLiteContactRepo
from cmsmail.api.auth_utils import create_admin_token
from cmsmail.api.deps import Settings
from cmsmail.app_shell.config import ConfigurationError, validate_ops_rules
from cmsmail.components.contacts import run_list
from cmsmail.rules.loader import load_rules
from cmsmail.rules.models import Rules

logger = logging.getLogger("cli")


def get_rules(settings: Settings) -> Rules:
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)

    rules = load_rules(settings.rules_path)
    try:
        validate_ops_rules(rules, settings.data_dir)
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(1)
    return rules


def handle_migrate(settings: Settings) -> None:
    migrator = SQLiteMigrator(settings.db_path, str(settings.migrations_dir))
    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migration(s) to {settings.db_path}.")


def handle_admin_token(rules: Rules, args: argparse.Namespace) -> None:
    ttl = args.ttl_minutes or rules.security.admin_token_ttl_minutes
    token = create_admin_token(args.subject, ttl_minutes=ttl)
    print(token)


def handle_contacts(settings: Settings) -> None:
    result = run_list(SQLiteContactRepo(settings.db_path))
    if result.errors:
        logger.error("Could not list contacts: %s", result.errors[0].message)
        sys.exit(1)

    print(f"{result.total} contact(s):")
    for contact in result.contacts:
        marker = "*" if contact.is_default else " "
        print(f" {marker} {contact.recipient_en} / {contact.recipient_fa} <{contact.email}>")


def handle_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("cmsmail.api.main:app", host=args.host, port=args.port)


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="CMS Mail CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # admin-token
    token_parser = subparsers.add_parser("admin-token", help="Mint an admin bearer token")
    token_parser.add_argument("--subject", default="admin", help="Token subject")
    token_parser.add_argument(
        "--ttl-minutes", type=int, default=None, help="Override rules.security TTL"
    )

    # contacts
    subparsers.add_parser("contacts", help="List contacts")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    settings = Settings()
    rules = get_rules(settings)

    if args.command == "migrate":
        handle_migrate(settings)
    elif args.command == "admin-token":
        handle_admin_token(rules, args)
    elif args.command == "contacts":
        handle_contacts(settings)
    elif args.command == "serve":
        handle_serve(args)


if __name__ == "__main__":
    main()
