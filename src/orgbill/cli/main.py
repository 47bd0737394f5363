"""Main CLI entry point."""

import logging

import click

from orgbill.cli.commands import node, report, tree
from orgbill.config import Settings
from orgbill.database.factories import create_sqlite_repository
from orgbill.domain.errors import DomainError
from orgbill.domain.hierarchy import HierarchyService


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides ORGBILL_DB_PATH environment variable)",
    envvar="ORGBILL_DB_PATH",
)
@click.option(
    "--max-depth",
    type=click.IntRange(min=1),
    help="Maximum hierarchy depth (overrides ORGBILL_MAX_DEPTH environment variable)",
    envvar="ORGBILL_MAX_DEPTH",
)
@click.option("--verbose", "-v", is_flag=True, help="Log service activity to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, max_depth: int | None, verbose: bool):
    """Orgbill - Organisation hierarchy and commission billing.

    Maintain the organisation tree with per-employee commission rates and
    generate billing reports from revenue entries.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Open the repository only when actually running a command (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = Settings.from_env()
            depth = max_depth if max_depth is not None else settings.max_depth
            repository = create_sqlite_repository(database_path=db_path, max_depth=depth)
        except DomainError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        ctx.call_on_close(repository.close)
        ctx.obj["settings"] = settings
        ctx.obj["repository"] = repository
        ctx.obj["hierarchy_service"] = HierarchyService(repository, max_depth=depth)


# Register all commands
tree.register_commands(cli)
node.register_commands(cli)
report.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
