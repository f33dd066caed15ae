import logging
from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: int = logging.INFO, show_path: bool = False) -> None:
    """
    Configure the root logger to render through rich on stderr.
    """
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=show_path)],
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Return a named logger (after logging is configured).
    """
    return logging.getLogger(name)
