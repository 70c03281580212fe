import logging

from store_edge.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure the root logger once for the running process.

    Modules log through ``logging.getLogger(__name__)``; this only decides
    the level and the single console handler they all propagate to.
    """
    root_logger = logging.getLogger()

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(settings.LOG_FORMAT))
    root_logger.addHandler(console_handler)
