"""Logging setup shared by the server and the CLI."""
import logging

from rich.logging import RichHandler

from imagecatalog.config import config


def configure_logging(level=None, use_rich=False):
    """
    Configure the root logger once per process.

    Args:
        level: Log level name (default from config)
        use_rich: Render records through rich instead of a plain stream handler
    """
    level = (level or config.log_level).upper()

    if use_rich:
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(config.log_format))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # urllib3 logs every retry at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)
