"""Call session lifecycle."""
from .session import CallDecision, CallPhase, CallSession
from .state_machine import CallConfig, CallStateMachine
from .feedback import DecisionFeedback

__all__ = [
    "CallDecision",
    "CallPhase",
    "CallSession",
    "CallConfig",
    "CallStateMachine",
    "DecisionFeedback",
]
