"""Sub-index commands."""
import click

from imagecatalog.cli.common import console, get_subindex_builder
from imagecatalog.errors import CatalogError
from imagecatalog.models.subindex import Subindex


@click.group(name="subindex")
def subindex_group():
    """Create and manage WFS-restricted sub-indices."""
    pass


@subindex_group.command(name="create")
@click.option("--wfsurl", required=True, help="WFS endpoint serving the polygon layer")
@click.option("--feature-type", required=True, help="WFS feature type name")
@click.option("--name", required=True, help="Human-readable sub-index name")
@click.option("--prefix", default=None, help="Catalog key prefix")
def create(wfsurl, feature_type, name, prefix):
    """Build a sub-index from a WFS layer."""
    subindex = Subindex(wfsurl=wfsurl, feature_type=feature_type, name=name)
    builder = get_subindex_builder(prefix)
    console.print(f"[bold]Building sub-index[/bold] {subindex.resolve_key(builder.features.prefix)}")
    try:
        count = builder.create(subindex)
    except CatalogError as e:
        console.print(f"[red]Failed: {e.message}[/red]")
        raise SystemExit(1)
    console.print(f"[green]Sub-index holds {count} scenes[/green]")


@subindex_group.command(name="list")
@click.option("--prefix", default=None, help="Catalog key prefix")
def list_subindexes(prefix):
    """List registered sub-indices."""
    builder = get_subindex_builder(prefix)
    subindexes = builder.list_subindexes()
    if not subindexes:
        console.print("[yellow]No sub-indices registered[/yellow]")
        return
    for key, subindex in subindexes.items():
        console.print(f"[bold]{subindex.name or key}[/bold]")
        console.print(f"  key: {key}")
        console.print(f"  scenes: {builder.store.zcard(key)}")


@subindex_group.command(name="drop")
@click.argument("key")
@click.option("--prefix", default=None, help="Catalog key prefix")
def drop(key, prefix):
    """Delete a sub-index."""
    builder = get_subindex_builder(prefix)
    try:
        builder.get_subindex(key)
    except CatalogError as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(1)
    builder.drop(key)
    console.print(f"[green]Dropped {key}[/green]")


@subindex_group.command(name="rebuild")
@click.option("--prefix", default=None, help="Catalog key prefix")
def rebuild(prefix):
    """Rebuild every registered sub-index from its WFS layer."""
    failed = 0
    for subindex, count, error in get_subindex_builder(prefix).rebuild_all():
        if error is not None:
            failed += 1
            console.print(f"[red]{subindex.key}: {error}[/red]")
        else:
            console.print(f"[green]{subindex.key}:[/green] {count} scenes")
    if failed:
        raise SystemExit(1)
