import logging

from catalog.config import settings

# Package-wide logger; modules log through child loggers
logger = logging.getLogger("catalog")
logger.setLevel(settings.log_level.upper())

if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )
    logger.addHandler(console_handler)


def get_child_logger(name):
    """Get a child logger with the given name."""
    return logger.getChild(name)
