"""Exceptions raised by the ipband daemon."""
from typing import Optional, Sequence


class IpbandError(Exception):
    """Base class for ipband errors."""


class CommandError(IpbandError):
    """An external command could not be spawned or exited non-zero."""

    def __init__(self, cmd: Sequence[str], returncode: Optional[int] = None, stderr: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            msg = f"failed to run {' '.join(self.cmd)}"
        else:
            msg = f"{' '.join(self.cmd)} exited with {returncode}"
        if stderr:
            msg += f": {stderr.strip()}"
        super().__init__(msg)


class ListenerError(IpbandError):
    """The notification connection failed; delivery order can no longer be trusted."""
