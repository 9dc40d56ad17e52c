"""
ipset management for the ipband daemon.

The live set is never edited in place. Each rebuild fills a scratch set and
swaps it with the live one inside a single `ipset restore` batch, so the
iptables rules (which reference the live set by name) always see one complete
generation of bans.
"""
import logging
from typing import Callable, Sequence

from .constants import MAXELEM, MIN_HASHSIZE, SET_NAME, SET_TYPE
from .executor import run_command

logger = logging.getLogger(__name__)


def hashsize_for(count: int) -> int:
    """
    Smallest power of two holding count entries plus a quarter headroom.

    This only sizes the hash table. How many entries fit is capped by the
    set's maxelem (ipset default MAXELEM), which is left alone so that
    `create ... -exist` keeps matching an existing set.
    """
    wanted = max(MIN_HASHSIZE, count + count // 4)
    size = MIN_HASHSIZE
    while size < wanted:
        size *= 2
    return size


def scratch_name(set_name: str) -> str:
    return f"{set_name}_new"


def build_restore_script(addresses: Sequence[str], set_name: str = SET_NAME) -> str:
    """
    Build the `ipset restore` script that replaces the live set's contents.

    Args:
        addresses: Addresses the live set should contain afterwards
        set_name: Name of the live set referenced by iptables

    Returns:
        Newline-terminated restore script
    """
    scratch = scratch_name(set_name)
    hashsize = hashsize_for(len(addresses))

    lines = [
        f"create {set_name} {SET_TYPE} hashsize {hashsize} -exist",
        f"create {scratch} {SET_TYPE} hashsize {hashsize} -exist",
    ]
    lines.extend(f"add {scratch} {address}" for address in addresses)
    lines.append(f"swap {set_name} {scratch}")
    # After the swap the scratch set holds the previous generation
    lines.append(f"flush {scratch}")
    return "\n".join(lines) + "\n"


def rebuild(
    addresses: Sequence[str],
    set_name: str = SET_NAME,
    run: Callable[..., object] = run_command,
) -> int:
    """
    Atomically replace the live set with the given addresses.

    Returns:
        Number of addresses loaded

    Raises:
        CommandError: If ipset fails
    """
    if len(addresses) > MAXELEM:
        logger.error(f"❌ {len(addresses)} bans exceed the ipset maxelem of {MAXELEM}, ipset will refuse the extra entries")
    script = build_restore_script(addresses, set_name)
    run(["ipset", "restore"], input=script)
    logger.debug(f"Swapped {len(addresses)} addresses into ipset {set_name}")
    return len(addresses)
