#!/usr/bin/env python3

"""IP ban management daemon"""

import logging
import sys
from importlib.metadata import PackageNotFoundError, version

import click

from ipband.constants import DEBOUNCE_SECONDS, DSN, LOG_LEVEL, RANGE_POLICY, SET_NAME
from ipband.core import BanDaemon
from ipband.db import host_names
from ipband.models import RangePolicy
from lib.logging_config import setup_logging

logger = logging.getLogger(__name__)


def get_version() -> str:
    try:
        return version("ipband")
    except PackageNotFoundError:
        return "0.0.0+local"


@click.command()
@click.option("-d", "--dsn", default=DSN, show_default=True, help="Where should we find our list of banned IPs")
@click.option("-n", "--name", default=None, help="This host's name (default: short hostname)")
@click.option("--set-name", default=SET_NAME, show_default=True, help="ipset holding the live bans")
@click.option(
    "--range-policy",
    type=click.Choice([p.value for p in RangePolicy]),
    default=RANGE_POLICY,
    show_default=True,
    help="Drop range (CIDR) bans, or collapse them to their network address",
)
@click.option(
    "--debounce",
    type=float,
    default=DEBOUNCE_SECONDS,
    show_default=True,
    help="Fold notifications arriving within this many seconds into one rebuild (0 = off)",
)
@click.option("--fail-fast", is_flag=True, help="Exit on the first failure instead of restarting with backoff")
@click.option("--log-level", default=LOG_LEVEL, show_default=True, help="TRACE, DEBUG, INFO, WARNING or ERROR")
@click.option("--version", "show_version", is_flag=True, help="Show version and exit")
def daemon(dsn, name, set_name, range_policy, debounce, fail_fast, log_level, show_version):
    """
    🛡️ IP ban management daemon

    Keeps the ipset block-list in sync with the bans table: rebuilds it on
    startup and whenever a notification arrives on the 'bans' channel.

    \b
    Examples:
        ipband                                   # Use IPBAND_DSN / defaults
        ipband -d "host=db user=ipband" -n web1  # Explicit store and host name
        ipband --fail-fast                       # Let the service manager restart us
        ipband --version
    """
    setup_logging(log_level.upper())

    fqdn, name = host_names(name)
    logger.info(f"shm-ipband {get_version()} - running on {fqdn} ({name})")
    if show_version:
        click.echo(f"shm-ipband {get_version()}")
        return

    ban_daemon = BanDaemon(
        dsn=dsn,
        name=name,
        set_name=set_name,
        policy=RangePolicy(range_policy),
        debounce=debounce,
        fail_fast=fail_fast,
    )
    try:
        ban_daemon.run()
    except Exception:
        # Already logged by the supervisor
        sys.exit(1)
