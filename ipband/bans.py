"""
Ban snapshot queries for the ipband daemon.

Turns the rows of the bans table into the list of addresses that should be
in the live ipset right now.
"""
import ipaddress
import logging
from typing import Iterable, Optional, Tuple

from .models import RangePolicy

logger = logging.getLogger(__name__)

ACTIVE_BANS_QUERY = (
    "SELECT ip FROM bans"
    " WHERE mode = 'firewall'"
    " AND added < now()"
    " AND (expires > now() OR expires IS NULL)"
)


def normalize_address(address: str, policy: RangePolicy = RangePolicy.exclude) -> Optional[str]:
    """
    Normalize a single address from the store.

    Args:
        address: Textual address, possibly with a CIDR suffix
        policy: Whether ranges are dropped or collapsed to their network address

    Returns:
        IPv4 address string, or None if the record should be skipped
    """
    address = address.strip()
    if "/" in address:
        if policy == RangePolicy.exclude:
            logger.debug(f"Skipping range ban {address}")
            return None
        address = address.split("/", 1)[0]

    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        logger.warning(f"⚠ Skipping malformed ban address {address!r}")
        return None

    if ip.version != 4:
        logger.warning(f"⚠ Skipping non-IPv4 ban address {address} (set family is inet)")
        return None
    if ip.is_unspecified:
        # hash:ip refuses 0.0.0.0 and would abort the whole restore batch
        logger.warning(f"⚠ Skipping unspecified ban address {address}")
        return None
    return str(ip)


def normalize_addresses(rows: Iterable[str], policy: RangePolicy = RangePolicy.exclude) -> Tuple[list[str], int]:
    """
    Normalize and deduplicate addresses, keeping the store's order.

    Returns:
        (addresses, number of records skipped)
    """
    addresses: list[str] = []
    seen: set[str] = set()
    skipped = 0
    for raw in rows:
        if raw is None:
            skipped += 1
            continue
        ip = normalize_address(str(raw), policy)
        if ip is None:
            skipped += 1
            continue
        if ip not in seen:
            seen.add(ip)
            addresses.append(ip)
    return addresses, skipped


def fetch_active_addresses(conn, policy: RangePolicy = RangePolicy.exclude) -> Tuple[list[str], int]:
    """
    Query the store for currently active firewall bans.

    Args:
        conn: Open psycopg2 connection
        policy: Range handling policy

    Returns:
        (addresses, number of records skipped)

    Raises:
        psycopg2.Error: If the query fails
    """
    with conn.cursor() as cursor:
        cursor.execute(ACTIVE_BANS_QUERY)
        rows = [row[0] for row in cursor.fetchall()]

    addresses, skipped = normalize_addresses(rows, policy)
    if skipped:
        logger.info(f"Skipped {skipped} of {len(rows)} ban records (policy: {policy.value})")
    return addresses, skipped
