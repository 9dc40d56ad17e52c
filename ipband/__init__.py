"""
ipband - keeps an ipset block-list in sync with the bans table.

This package listens for ban changes in PostgreSQL and atomically rebuilds the
host's ipset, making sure iptables drops traffic from banned addresses.
"""

from .constants import (
    CHANNEL,
    DEBOUNCE_SECONDS,
    DSN,
    IPTABLES_CHAIN,
    LOG_LEVEL,
    PROTECTED_PORTS,
    RANGE_POLICY,
    SET_NAME,
)
from .core import BanDaemon, Reconciler, supervise
from .errors import CommandError, IpbandError, ListenerError
from .iptables import IptablesManager
from .listener import NotificationListener

__all__ = [
    # Constants
    "CHANNEL",
    "DEBOUNCE_SECONDS",
    "DSN",
    "IPTABLES_CHAIN",
    "LOG_LEVEL",
    "PROTECTED_PORTS",
    "RANGE_POLICY",
    "SET_NAME",
    # Classes
    "BanDaemon",
    "IptablesManager",
    "NotificationListener",
    "Reconciler",
    "supervise",
    # Errors
    "CommandError",
    "IpbandError",
    "ListenerError",
]
