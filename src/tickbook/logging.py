import logging

from tickbook.config import settings

"""
Package-wide logger. Pool creation is reported at INFO, ledger commits and snapshot I/O at DEBUG.
The starting level comes from the `log_level` setting.
"""

logger = logging.getLogger("tickbook")
logger.propagate = False
logger.setLevel(settings.log_level)
logger.addHandler(logging.StreamHandler())
