"""Organisation tree commands."""

from pathlib import Path

import click

from orgbill.cli.error_handling import handle_domain_error
from orgbill.cli.tree_resolution import resolve_tree_or_exit
from orgbill.domain.errors import DomainError
from orgbill.domain.hierarchy import HierarchyService
from orgbill.domain.node import HierarchyNode


def _format_node(node: HierarchyNode) -> str:
    rates = (
        f"bank {node.bank_provision}% | insurance {node.insurance_provision}% | "
        f"real estate {node.real_estate_provision}%"
    )
    return f"{node.name} [{node.type.label}] ({rates}) ID: {node.id}"


@click.group()
def tree_group():
    """Manage the organisation tree."""
    pass


@tree_group.command("create")
@click.argument("name")
@click.option("--description", default="", help="Tree description")
@click.pass_context
def create_tree(ctx, name: str, description: str):
    """Create the organisation tree.

    Only one tree is kept; if it already exists it is left unchanged.

    Examples:
        orgbill tree create "Acme Finance"
    """
    service: HierarchyService = ctx.obj["hierarchy_service"]
    existing = service.get_default_tree()
    try:
        tree = service.create_tree(name, description)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if existing is not None:
        click.echo(f"Organisation tree already exists: '{tree.name}' (ID: {tree.id})")
    else:
        click.echo(f"Created organisation tree '{tree.name}' (ID: {tree.id})")


@tree_group.command("show")
@click.option("--max-level", type=int, default=None, help="Only show nodes up to this depth")
@click.pass_context
def show_tree(ctx, max_level: int | None):
    """Print the organisation tree with commission rates."""
    service: HierarchyService = ctx.obj["hierarchy_service"]
    tree = resolve_tree_or_exit(ctx, service)

    click.echo(f"{tree.name} ({tree.node_count} nodes)")
    if tree.root_id is None:
        click.echo("The tree has no nodes yet.")
        return

    click.echo("-" * 60)

    def print_node(node: HierarchyNode, depth: int) -> None:
        if max_level is None or depth <= max_level:
            click.echo(f"{'  ' * depth}{_format_node(node)}")

    tree.traverse(print_node)


@tree_group.command("export")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Write the export to a file instead of stdout",
)
@click.pass_context
def export_tree(ctx, output: Path | None):
    """Export the organisation tree as JSON."""
    service: HierarchyService = ctx.obj["hierarchy_service"]
    tree = resolve_tree_or_exit(ctx, service)
    document = service.export_tree(tree)
    if output is None:
        click.echo(document)
        return
    output.write_text(document, encoding="utf-8")
    click.echo(f"Exported '{tree.name}' to {output}")


@tree_group.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_tree(ctx, file: Path):
    """Import an organisation tree from an export file."""
    service: HierarchyService = ctx.obj["hierarchy_service"]
    try:
        tree = service.import_tree(file.read_text(encoding="utf-8"))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Imported '{tree.name}' with {tree.node_count} nodes (ID: {tree.id})")


def register_commands(cli):
    """Register tree commands with main CLI."""
    cli.add_command(tree_group, name="tree")
