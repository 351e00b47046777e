"""Harvest commands."""
import uuid

import click

from imagecatalog.cli.common import console, get_harvester, get_recurring, load_geojson
from imagecatalog.errors import CatalogError
from imagecatalog.models.harvest import FeatureLayer, HarvestFilter, HarvestOptions
from imagecatalog.utils.geometry import parse_bbox


@click.group(name="harvest")
def harvest_group():
    """Harvest vendor scene metadata into the catalog."""
    pass


@harvest_group.command(name="planet")
@click.option("--api-key", default=None, help="Planet API key (default: PL_API_KEY)")
@click.option("--reharvest", is_flag=True, help="Overwrite scenes already in the catalog")
@click.option("--cap", default=0, type=int, help="Maximum pages to fetch (0 for all)")
@click.option("--page-size", default=0, type=int, help="Features per Planet page")
@click.option("--event", is_flag=True, help="Announce new scenes on the event bus")
@click.option("--pz-gateway", default=None, help="Event bus gateway URL")
@click.option("--pz-auth", default=None, help="Authorization value for the event bus")
@click.option("--whitelist", type=click.Path(exists=True), help="GeoJSON scenes must touch")
@click.option("--blacklist", type=click.Path(exists=True), help="GeoJSON scenes must avoid")
@click.option("--since", default=None, help="Only scenes acquired at or after this RFC3339 time")
@click.option("--save-as", default=None, help="Also save these options as a recurring harvest")
@click.option("--prefix", default=None, help="Catalog key prefix")
def planet(api_key, reharvest, cap, page_size, event, pz_gateway, pz_auth,
           whitelist, blacklist, since, save_as, prefix):
    """Harvest Landsat 8 scenes from Planet."""
    options = HarvestOptions(
        event=event,
        reharvest=reharvest,
        pl_api_key=api_key or "",
        pz_gateway=pz_gateway or "",
        pz_auth=pz_auth or "",
        filter=HarvestFilter(
            whitelist=FeatureLayer(geojson=load_geojson(whitelist) if whitelist else None),
            blacklist=FeatureLayer(geojson=load_geojson(blacklist) if blacklist else None),
        ),
        cap=cap,
        recurring=bool(save_as),
        request_page_size=page_size,
    )

    if save_as:
        key = save_as if save_as != "-" else uuid.uuid4().hex
        get_recurring().save(key, options)
        console.print(f"[green]Saved recurring harvest[/green] {key}")

    console.print("[bold]Harvesting Planet Landsat 8 scenes...[/bold]")
    try:
        total = get_harvester(prefix).harvest_planet(options, since=since)
    except CatalogError as e:
        console.print(f"[red]Harvest failed: {e.message}[/red]")
        raise SystemExit(1)
    console.print(f"[green]Stored {total} scenes[/green]")


@harvest_group.command(name="dg")
@click.option("--auth", "authorization", required=True, help="Authorization header for DigitalGlobe")
@click.option("--bbox", required=True, help="minLon,minLat,maxLon,maxLat to search")
@click.option("--cell-size", default=0.5, type=float, help="Search cell size in degrees")
@click.option("--reharvest", is_flag=True, help="Overwrite scenes already in the catalog")
@click.option("--whitelist", type=click.Path(exists=True), help="GeoJSON scenes must touch")
@click.option("--prefix", default=None, help="Catalog key prefix")
def dg(authorization, bbox, cell_size, reharvest, whitelist, prefix):
    """Harvest recent DigitalGlobe scenes over a bounding box."""
    try:
        box = parse_bbox(bbox)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--bbox")
    options = HarvestOptions(
        reharvest=reharvest,
        filter=HarvestFilter(
            whitelist=FeatureLayer(geojson=load_geojson(whitelist) if whitelist else None)
        ),
    )

    console.print(f"[bold]Searching DigitalGlobe over[/bold] {bbox}")
    try:
        total = get_harvester(prefix).harvest_dg(options, authorization, box, cell_size=cell_size)
    except CatalogError as e:
        console.print(f"[red]Harvest failed: {e.message}[/red]")
        raise SystemExit(1)
    console.print(f"[green]Stored {total} scenes[/green]")


@harvest_group.command(name="recurring")
@click.option("--prefix", default=None, help="Catalog key prefix")
def recurring(prefix):
    """Run every saved recurring harvest once."""
    store = get_recurring()
    keys = store.keys()
    if not keys:
        console.print("[yellow]No recurring harvests registered[/yellow]")
        return

    harvester = get_harvester(prefix)
    failed = 0
    for key in keys:
        try:
            options = store.get(key)
            total = harvester.harvest_planet(options)
        except CatalogError as e:
            failed += 1
            console.print(f"[red]{key}: {e.message}[/red]")
            continue
        console.print(f"[green]{key}:[/green] stored {total} scenes")

    if failed:
        raise SystemExit(1)


@harvest_group.command(name="list-recurring")
def list_recurring():
    """List saved recurring harvests."""
    store = get_recurring()
    for key in store.keys():
        options = store.get(key)
        console.print(
            f"[bold]{key}[/bold]  event={options.event} reharvest={options.reharvest} cap={options.cap}"
        )


@harvest_group.command(name="delete-recurring")
@click.argument("key")
def delete_recurring(key):
    """Forget a recurring harvest."""
    try:
        get_recurring().delete(key)
    except CatalogError as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(1)
    console.print(f"[green]Removed recurring harvest {key}[/green]")
