"""
Call session types.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class CallPhase(Enum):
    IDLE = "idle"
    RINGING = "ringing"
    DECIDED = "decided"


class CallDecision(Enum):
    ACCEPTED = "accepted"
    DECLINED = "declined"


@dataclass
class CallSession:
    """One ringing episode.

    ``decision`` is set iff ``phase`` is DECIDED, and never changes
    afterwards for the same ``session_id``.
    """
    phase: CallPhase = CallPhase.IDLE
    decision: Optional[CallDecision] = None
    session_id: int = 0
    started_at: Optional[float] = None
    decided_at: Optional[float] = None

    @property
    def is_ringing(self) -> bool:
        return self.phase is CallPhase.RINGING

    @property
    def is_decided(self) -> bool:
        return self.decision is not None

    @property
    def time_to_decision(self) -> Optional[float]:
        """Seconds between ringing and the decision, if decided."""
        if self.started_at is None or self.decided_at is None:
            return None
        return self.decided_at - self.started_at

    def copy(self) -> "CallSession":
        return replace(self)
