"""
Store connection bootstrap for the ipband daemon.
"""
import logging
import socket
from typing import Optional

import psycopg2

from .constants import APP_NAME_TEMPLATE

logger = logging.getLogger(__name__)


def host_names(name: Optional[str] = None) -> tuple[str, str]:
    """
    Resolve this host's names.

    Args:
        name: Explicit short name overriding the resolved one

    Returns:
        (fqdn, short name)
    """
    fqdn = socket.gethostname()
    return fqdn, name or fqdn.split(".")[0]


def application_name(name: str) -> str:
    return APP_NAME_TEMPLATE.format(name=name)


def connect(dsn: str, name: str):
    """
    Open an autocommit connection identified by this host's name.

    Autocommit matters twice: LISTEN only delivers outside a transaction, and
    now() in the ban query must be evaluated per statement.
    """
    conn = psycopg2.connect(dsn, application_name=application_name(name))
    conn.autocommit = True
    logger.debug(f"Connected to store as {application_name(name)}")
    return conn
