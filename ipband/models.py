from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class RangePolicy(str, Enum):
    """What to do with ban records whose address carries a CIDR suffix"""

    exclude = "exclude"
    flatten = "flatten"


class State(str, Enum):
    """Reconciliation loop state"""

    starting = "starting"
    idle = "idle"
    reconciling = "reconciling"
    fatal = "fatal"


class Notification(BaseModel):
    """Notification model"""

    channel: str
    """The channel the notification was sent on"""
    payload: str = ""
    """Free-form payload; never trusted as ban data"""
    pid: int = 0
    """Backend process id of the notifying session"""


class ReconcileResult(BaseModel):
    """Outcome of a single reconciliation"""

    addresses: List[str] = Field(default_factory=list)
    """Addresses loaded into the live set"""
    excluded: int = 0
    """Records skipped (ranges or unparsable addresses)"""
    rules_added: List[int] = Field(default_factory=list)
    """Ports that got a new DROP rule"""
