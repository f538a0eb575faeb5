"""
Logging setup for the command-line entry points
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(debug: bool = False) -> None:
    """Route bloatjack loggers to stderr through rich"""
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=debug,
        show_path=debug,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger("bloatjack")
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if debug else logging.WARNING)
    root.propagate = False
