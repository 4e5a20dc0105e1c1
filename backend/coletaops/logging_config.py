"""Application logging setup.

Log lines carry the organization of the request that produced them:

    2026-03-02 10:14:07 INFO coletaops.services.runs [org=7f3c…] Run 1a2b… started
"""

import logging

from coletaops.config import settings
from coletaops.tenancy import peek_current_org_id

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [org=%(org_id)s] %(message)s"


class OrgContextFilter(logging.Filter):
    """Attach the current request's org id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.org_id = peek_current_org_id() or "-"
        return True


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(OrgContextFilter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level.upper())
