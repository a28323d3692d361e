"""
Call State Machine
===================

Owns the CallSession and turns a stream of per-frame gesture labels into a
single accept/decline decision per ringing session.

Transitions:
    IDLE / RINGING / DECIDED --start_call-->             RINGING (new session)
    RINGING --accept gesture, no decision-->             DECIDED(ACCEPTED)
    RINGING --decline gesture, no decision-->            DECIDED(DECLINED)
    RINGING --any other label-->                         RINGING
    IDLE / DECIDED --any gesture-->                      unchanged
    any --end_call-->                                    IDLE

Only the first qualifying gesture of a session counts: the recognizer keeps
reporting the same pose for many frames, and a later misclassification must
not overturn a decision already made.
"""

import time
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Union

from ..core.events import EventBus, Events
from ..recognition.types import GestureLabel
from .session import CallDecision, CallPhase, CallSession

logger = logging.getLogger(__name__)


def _spoken(gesture: GestureLabel) -> str:
    if gesture is GestureLabel.THUMB_UP:
        return "thumbs up"
    if gesture is GestureLabel.THUMB_DOWN:
        return "thumbs down"
    return gesture.display_name.lower()


@dataclass
class CallConfig:
    """Gesture mapping for call decisions."""
    accept_gesture: GestureLabel = GestureLabel.THUMB_UP
    decline_gesture: GestureLabel = GestureLabel.CLOSED_FIST
    min_score: float = 0.0  # Gestures scored below this count as no gesture

    @classmethod
    def from_dict(cls, config: dict) -> "CallConfig":
        """Create config from dictionary."""
        accept = GestureLabel.from_string(config.get("accept_gesture", "Thumb_Up"))
        decline = GestureLabel.from_string(config.get("decline_gesture", "Closed_Fist"))
        if accept is GestureLabel.NONE or decline is GestureLabel.NONE or accept is decline:
            logger.warning("Invalid call gesture mapping (%s / %s), using defaults",
                           config.get("accept_gesture"), config.get("decline_gesture"))
            accept, decline = GestureLabel.THUMB_UP, GestureLabel.CLOSED_FIST
        return cls(
            accept_gesture=accept,
            decline_gesture=decline,
            min_score=float(config.get("min_score", 0.0)),
        )


class CallStateMachine:
    """
    Single writer of the CallSession.

    Every other component reads copies via ``snapshot()``. The "no decision
    yet" guard and the transition happen under one lock, so a decision can
    never be made twice for a session.

    Example:
        >>> machine = CallStateMachine()
        >>> machine.start_call()
        >>> machine.handle_gesture("Thumb_Up")
        <CallDecision.ACCEPTED: 'accepted'>
        >>> machine.handle_gesture("Closed_Fist") is None
        True
    """

    def __init__(self, config: Optional[CallConfig] = None, event_bus: Optional[EventBus] = None):
        self.config = config or CallConfig()
        self._bus = event_bus
        self._lock = threading.Lock()
        self._session = CallSession()
        self._next_session_id = 1
        self._call_status = ""

    # --- Events -----------------------------------------------------------

    def start_call(self) -> CallSession:
        """Start a new ringing session, discarding any previous decision."""
        with self._lock:
            self._session = CallSession(
                phase=CallPhase.RINGING,
                session_id=self._next_session_id,
                started_at=time.time(),
            )
            self._next_session_id += 1
            self._call_status = self.ringing_message
            session = self._session.copy()

        logger.info("Call #%d ringing", session.session_id)
        if self._bus:
            self._bus.emit(Events.CALL_STARTED, session_id=session.session_id)
        return session

    def handle_gesture(
        self,
        label: Union[GestureLabel, str, None],
        session_id: Optional[int] = None,
        score: Optional[float] = None,
    ) -> Optional[CallDecision]:
        """
        Feed one gesture label into the machine.

        Args:
            label: Gesture label (enum or raw recognizer string)
            session_id: Session the label was recognized for; labels for any
                other session are ignored
            score: Classifier confidence, checked against ``min_score``

        Returns:
            The decision made by this event, or None if it was ignored
        """
        gesture = GestureLabel.from_string(label)
        if gesture is self.config.accept_gesture:
            decision = CallDecision.ACCEPTED
        elif gesture is self.config.decline_gesture:
            decision = CallDecision.DECLINED
        else:
            return None

        if score is not None and score < self.config.min_score:
            logger.debug("Ignoring %s (score %.2f < %.2f)", gesture.value, score, self.config.min_score)
            return None

        with self._lock:
            session = self._session
            if session.phase is not CallPhase.RINGING or session.decision is not None:
                return None
            if session_id is not None and session_id != session.session_id:
                return None

            session.decision = decision
            session.phase = CallPhase.DECIDED
            session.decided_at = time.time()
            self._call_status = self._decision_message(decision)
            decided = session.copy()

        logger.info("Call #%d %s by %s", decided.session_id, decision.value, gesture.value)
        if self._bus:
            self._bus.emit(
                Events.CALL_DECIDED,
                session_id=decided.session_id,
                decision=decision,
                gesture=gesture,
                confidence=score,
                time_to_decision=decided.time_to_decision,
            )
        return decision

    def end_call(self) -> None:
        """Hang up: back to IDLE with the decision and status cleared."""
        with self._lock:
            if self._session.phase is CallPhase.IDLE:
                return
            session_id = self._session.session_id
            self._session = CallSession(session_id=session_id)
            self._call_status = ""

        logger.info("Call #%d ended", session_id)
        if self._bus:
            self._bus.emit(Events.CALL_ENDED, session_id=session_id)

    # --- Observers --------------------------------------------------------

    def snapshot(self) -> CallSession:
        """Copy of the current session, consistent at one instant."""
        with self._lock:
            return self._session.copy()

    @property
    def phase(self) -> CallPhase:
        with self._lock:
            return self._session.phase

    @property
    def decision(self) -> Optional[CallDecision]:
        with self._lock:
            return self._session.decision

    @property
    def is_ringing(self) -> bool:
        return self.phase is CallPhase.RINGING

    @property
    def call_status(self) -> str:
        with self._lock:
            return self._call_status

    @property
    def ringing_message(self) -> str:
        return "Incoming call - show {} to accept or {} to decline".format(
            _spoken(self.config.accept_gesture), _spoken(self.config.decline_gesture)
        )

    @staticmethod
    def _decision_message(decision: CallDecision) -> str:
        if decision is CallDecision.ACCEPTED:
            return "Call accepted!"
        return "Call declined!"
