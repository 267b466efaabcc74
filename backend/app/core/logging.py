"""Process-wide logging setup.

Modules log through ``logging.getLogger(__name__)``; this module only
configures the root handler once at application start.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> int:
    """Configure root logging from a level name.

    Unknown level names fall back to INFO.

    Args:
        level: Level name such as "DEBUG" or "warning".

    Returns:
        The numeric level that was applied.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)
    return numeric
