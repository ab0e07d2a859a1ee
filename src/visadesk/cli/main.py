"""Main CLI entry point."""

import click
from visadesk.database.factories import create_sqlite_database
from visadesk.logging_config import setup_logging

# Import and register all commands at module level
from visadesk.cli.commands import (
    audit,
    bill,
    client,
    order,
    passport,
    payment,
    product,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides VISADESK_DB_PATH environment variable)",
    envvar="VISADESK_DB_PATH",
)
@click.option(
    "--user-id",
    type=int,
    envvar="VISADESK_USER_ID",
    help="ID of the acting user, recorded in the audit trail",
)
@click.option(
    "--log-level",
    default="WARNING",
    show_default=True,
    envvar="VISADESK_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity",
)
@click.option(
    "--log-format",
    default="text",
    show_default=True,
    envvar="VISADESK_LOG_FORMAT",
    type=click.Choice(["text", "json"]),
    help="Log line format",
)
@click.pass_context
def cli(ctx, db_path: str | None, user_id: int | None, log_level: str, log_format: str):
    """Visadesk - back office for a travel and visa agency.

    Keep track of clients, passports, products and orders, bill clients
    for their orders, record payments, and review the audit trail of every
    change.
    """
    ctx.ensure_object(dict)
    setup_logging(log_level, log_format)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["user_id"] = user_id
        ctx.call_on_close(db.disconnect)


# Register all commands
client.register_commands(cli)
passport.register_commands(cli)
product.register_commands(cli)
order.register_commands(cli)
bill.register_commands(cli)
payment.register_commands(cli)
audit.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
