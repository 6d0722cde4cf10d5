"""
Logging Setup

Configures the stdlib root logger once at startup.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging; safe to call more than once."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)
    # SQL echo is controlled by the engine, not the root level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
