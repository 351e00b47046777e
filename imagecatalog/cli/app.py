"""Main CLI application entry point."""
import click

from imagecatalog import __version__
from imagecatalog.utils.logs import configure_logging


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Log level (default: from config)")
@click.pass_context
def cli(ctx, log_level):
    """Image catalog - satellite scene metadata catalog and discovery service."""
    ctx.ensure_object(dict)
    configure_logging(log_level, use_rich=True)


# Import command modules
from imagecatalog.cli import harvest, index, serve, subindex

# Register command groups
cli.add_command(serve.serve)
cli.add_command(index.index_group)
cli.add_command(index.discover)
cli.add_command(harvest.harvest_group)
cli.add_command(subindex.subindex_group)


if __name__ == "__main__":
    cli()
