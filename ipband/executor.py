"""
External command execution for the ipband daemon.

Both the ipset rebuild and the iptables rule checks go through run_command,
so failures surface the same way everywhere.
"""
import logging
import subprocess
from typing import Optional

from .errors import CommandError

logger = logging.getLogger(__name__)


def run_command(cmd: list[str], input: Optional[str] = None, check: bool = True) -> subprocess.CompletedProcess:
    """
    Run a command, optionally streaming a script to its stdin.

    Args:
        cmd: Command and arguments to run
        input: Text written to the command's stdin (None = no stdin)
        check: Whether to raise CommandError on non-zero return code

    Returns:
        CompletedProcess instance

    Raises:
        CommandError: If the command cannot be spawned, or exits non-zero and check is set
    """
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, input=input, capture_output=True, text=True)
    except OSError as e:
        # Missing binary, permission denied, broken pipe while feeding stdin
        raise CommandError(cmd, stderr=str(e)) from e

    if check and result.returncode != 0:
        raise CommandError(cmd, result.returncode, result.stderr)
    return result
