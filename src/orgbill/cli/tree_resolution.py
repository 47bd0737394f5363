"""CLI helpers for locating the organisation tree."""

from __future__ import annotations

import click

from orgbill.domain.hierarchy import HierarchyService
from orgbill.domain.tree import HierarchyTree


def resolve_tree_or_exit(ctx: click.Context, service: HierarchyService) -> HierarchyTree:
    """Return the organisation tree, or exit with a CLI error if none exists.

    This keeps error messaging and exit behavior consistent across commands.
    """
    tree = service.get_default_tree()
    if tree is None:
        click.echo("Error: No organisation tree found. Run 'orgbill tree create' first.", err=True)
        ctx.exit(1)
    return tree
