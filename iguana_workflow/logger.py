import logging

from rich.console import Console
from rich.logging import RichHandler

from iguana_workflow import config

PACKAGE_LOGGER = "iguana_workflow"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Attach a RichHandler to the package logger.
    Verbose output is also enabled when IGUANA_VERBOSE is set.
    """
    verbose = verbose or config.verbose_from_env()
    level = logging.DEBUG if verbose else logging.INFO

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    console = Console(stderr=True)
    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_path=False,
        show_level=True,
        show_time=verbose,
        log_time_format=DATE_FORMAT,
    )
    handler.setLevel(level)

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False

    return logger
