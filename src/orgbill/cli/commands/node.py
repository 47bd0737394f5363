"""Hierarchy node commands."""

import click

from orgbill.cli.error_handling import handle_domain_error
from orgbill.cli.tree_resolution import resolve_tree_or_exit
from orgbill.domain.entities import NodeType
from orgbill.domain.errors import DomainError
from orgbill.domain.hierarchy import HierarchyService

NODE_TYPES = [t.value for t in NodeType]


def _node_options(func):
    """Options shared by 'node add' and 'node update'."""
    options = [
        click.option("--description", help="Free-text description"),
        click.option("--type", "node_type", type=click.Choice(NODE_TYPES), help="Node kind"),
        click.option("--email", help="Email address"),
        click.option("--phone", help="Phone number"),
        click.option("--bank", "bank_provision", help="Bank commission rate in percent"),
        click.option(
            "--insurance", "insurance_provision", help="Insurance commission rate in percent"
        ),
        click.option(
            "--real-estate", "real_estate_provision", help="Real estate commission rate in percent"
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _collect_fields(**fields) -> dict:
    data = {key: value for key, value in fields.items() if value is not None}
    if "node_type" in data:
        data["type"] = data.pop("node_type")
    return data


@click.group()
def node_group():
    """Manage nodes of the organisation tree."""
    pass


@node_group.command("add")
@click.argument("name")
@click.option("--parent", "parent_id", help="Parent node ID (omit to create the root)")
@_node_options
@click.pass_context
def add_node(ctx, name: str, parent_id: str | None, **fields):
    """Add a node to the organisation tree.

    Examples:
        orgbill node add "Acme Finance"
        orgbill node add "Jane Doe" --parent <ID> --type person --bank 50
    """
    service: HierarchyService = ctx.obj["hierarchy_service"]
    tree = resolve_tree_or_exit(ctx, service)
    try:
        node = service.add_node(tree.id, {"name": name, **_collect_fields(**fields)}, parent_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added node '{node.name}' (ID: {node.id})")


@node_group.command("update")
@click.argument("node_id")
@click.option("--name", help="New display name")
@_node_options
@click.pass_context
def update_node(ctx, node_id: str, name: str | None, **fields):
    """Update fields of a node.

    Examples:
        orgbill node update <ID> --bank 60 --insurance 40
    """
    updates = _collect_fields(name=name, **fields)
    if not updates:
        click.echo("Error: Nothing to update. Pass at least one field option.", err=True)
        ctx.exit(1)

    service: HierarchyService = ctx.obj["hierarchy_service"]
    tree = resolve_tree_or_exit(ctx, service)
    try:
        node = service.update_node(tree.id, node_id, updates)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated node '{node.name}': {', '.join(sorted(updates))}")


@node_group.command("remove")
@click.argument("node_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def remove_node(ctx, node_id: str, yes: bool):
    """Remove a node; its children move up to its parent."""
    service: HierarchyService = ctx.obj["hierarchy_service"]
    tree = resolve_tree_or_exit(ctx, service)
    try:
        node = tree.get_node(node_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(f"Are you sure you want to remove '{node.name}'?"):
        click.echo("Removal cancelled.")
        return

    try:
        service.remove_node(tree.id, node_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Removed node '{node.name}'")


@node_group.command("move")
@click.argument("node_id")
@click.argument("new_parent_id")
@click.pass_context
def move_node(ctx, node_id: str, new_parent_id: str):
    """Move a node (with its subtree) under a new parent."""
    service: HierarchyService = ctx.obj["hierarchy_service"]
    tree = resolve_tree_or_exit(ctx, service)
    try:
        node = service.move_node(tree.id, node_id, new_parent_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Moved node '{node.name}'")


@node_group.command("reorder")
@click.argument("parent_id")
@click.argument("child_ids", nargs=-1, required=True)
@click.pass_context
def reorder_children(ctx, parent_id: str, child_ids: tuple[str, ...]):
    """Set the display order of a node's children.

    CHILD_IDS must list every current child exactly once.
    """
    service: HierarchyService = ctx.obj["hierarchy_service"]
    tree = resolve_tree_or_exit(ctx, service)
    try:
        children = service.reorder_children(tree.id, parent_id, list(child_ids))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo("New order: " + ", ".join(child.name for child in children))


@node_group.command("list")
@click.pass_context
def list_employees(ctx):
    """List every employee (all nodes below the root)."""
    service: HierarchyService = ctx.obj["hierarchy_service"]
    tree = resolve_tree_or_exit(ctx, service)
    employees = service.get_all_employees(tree.id)
    if not employees:
        click.echo("No employees found.")
        return

    click.echo("\nEmployees:")
    click.echo("-" * 60)
    for emp in employees:
        click.echo(f"{emp['last_name']:20s} | {emp['first_name']:20s} | ID: {emp['id']}")


def register_commands(cli):
    """Register node commands with main CLI."""
    cli.add_command(node_group, name="node")
