"""Catalog index commands."""
import json

import click

from imagecatalog.cli.common import console, get_discovery, get_feature_store, print_scene
from imagecatalog.errors import CatalogError
from imagecatalog.server import parse_discover_request


@click.group(name="index")
def index_group():
    """Inspect and maintain the global index."""
    pass


@index_group.command(name="size")
@click.option("--prefix", default=None, help="Catalog key prefix")
def size(prefix):
    """Show how many scenes the index holds."""
    features = get_feature_store(prefix)
    console.print(f"[bold]{features.index_key}:[/bold] {features.size()} scenes")
    unscored = features.unscored_members()
    if unscored:
        console.print(f"[yellow]{len(unscored)} scenes have no score[/yellow]")


@index_group.command(name="get")
@click.argument("scene_id")
@click.option("--prefix", default=None, help="Catalog key prefix")
@click.option("--json", "as_json", is_flag=True, help="Print the raw feature")
def get_scene(scene_id, prefix, as_json):
    """Show one scene."""
    try:
        feature = get_feature_store(prefix).get(scene_id)
    except CatalogError as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(1)
    if as_json:
        click.echo(json.dumps(feature, indent=2))
    else:
        print_scene(feature)


@index_group.command(name="delete")
@click.argument("scene_id")
@click.option("--prefix", default=None, help="Catalog key prefix")
def delete_scene(scene_id, prefix):
    """Remove a scene from every index and delete it."""
    features = get_feature_store(prefix)
    try:
        feature = features.get(scene_id)
    except CatalogError as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(1)
    features.delete(feature)
    get_discovery(prefix).evict_all()
    console.print(f"[green]Removed {scene_id}[/green]")


@index_group.command(name="drop")
@click.option("--prefix", default=None, help="Catalog key prefix")
@click.confirmation_option(prompt="Empty the global index?")
def drop(prefix):
    """Empty the global index; scene blobs are kept."""
    features = get_feature_store(prefix)
    features.drop()
    evicted = get_discovery(prefix).evict_all()
    console.print(f"[green]Dropped {features.index_key}[/green] ({evicted} cached queries evicted)")


@click.command(name="discover")
@click.option("--bbox", default=None, help="minLon,minLat,maxLon,maxLat")
@click.option("--acquired-date", default=None, help="Earliest acquisition (RFC3339)")
@click.option("--max-acquired-date", default=None, help="Latest acquisition (RFC3339)")
@click.option("--cloud-cover", default=None, help="Maximum cloud cover (0-100)")
@click.option("--bands", default=None, help="Comma-separated band names")
@click.option("--sub-index", default=None, help="Sub-index key to search")
@click.option("--count", default=None, help="Page size")
@click.option("--start-index", default=None, help="First rank to return")
@click.option("--nocache", is_flag=True, help="Scan directly without the result cache")
@click.option("--rigorous", is_flag=True, help="Require true footprint intersection")
@click.option("--prefix", default=None, help="Catalog key prefix")
def discover(bbox, acquired_date, max_acquired_date, cloud_cover, bands, sub_index,
             count, start_index, nocache, rigorous, prefix):
    """Search the catalog the way GET /discover does."""
    values = {
        "bbox": bbox,
        "acquiredDate": acquired_date,
        "maxAcquiredDate": max_acquired_date,
        "cloudCover": cloud_cover,
        "bands": bands,
        "subIndex": sub_index,
        "count": count,
        "startIndex": start_index,
        "nocache": "true" if nocache else None,
        "rigorous": "true" if rigorous else None,
    }
    try:
        query, options = parse_discover_request({k: v for k, v in values.items() if v is not None})
        result, _ = get_discovery(prefix).get_scenes(query, options)
    except CatalogError as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(1)

    console.print(
        f"\n[bold cyan]{result.count} of {result.total_count} scenes[/bold cyan] "
        f"(from index {result.start_index})"
    )
    console.print("=" * 60)
    for feature in result.images["features"]:
        properties = feature.get("properties") or {}
        console.print(
            f"[bold]{feature['id']}[/bold]  {properties.get('acquiredDate', '?')}  "
            f"cloud {properties.get('cloudCover', '?')}"
        )
