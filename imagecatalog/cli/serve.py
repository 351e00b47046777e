"""Run the HTTP service."""
import click
import redis

from imagecatalog.auth import DenyAllProvider, PermissiveProvider
from imagecatalog.cli.common import console, get_feature_store
from imagecatalog.config import config
from imagecatalog.server import create_app


@click.command(name="serve")
@click.option("--host", default=None, help="Bind address (default: from config)")
@click.option("--port", default=None, type=int, help="Port (default: from config or PORT)")
@click.option("--prefix", default=None, help="Catalog key prefix (default: from config)")
@click.option("--permissive-auth", is_flag=True, help="Accept any Authorization header (development only)")
def serve(host, port, prefix, permissive_auth):
    """Serve discovery, harvest and sub-index requests."""
    features = get_feature_store(prefix)
    try:
        features.store.ping()
    except redis.RedisError as e:
        raise click.ClickException(f"Failed to connect to Redis: {e}")

    auth = PermissiveProvider() if permissive_auth else DenyAllProvider()
    if permissive_auth:
        console.print("[yellow]Permissive authentication enabled[/yellow]")

    app = create_app(feature_store=features, auth_provider=auth)
    host = host or config.server_host
    port = port or config.server_port
    console.print(f"[bold]Serving catalog[/bold] {features.prefix} on {host}:{port}")
    app.run(host=host, port=port, threaded=True)
