"""
Structured logging with call decision event logging.
"""

import os
import logging
import logging.handlers
import time


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure structured logging for the application."""
    # Compact console format
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    # Verbose format for log file
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-30s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    # File handler (rotating)
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class CallLogger:
    """Specialized logger for call lifecycle events."""

    def __init__(self):
        self.logger = logging.getLogger("call_events")
        self._history = []

    def log_call_started(self, session_id):
        self.logger.info("Call #%d: ringing", session_id)

    def log_decision(self, session_id, decision, gesture=None, confidence=None,
                     time_to_decision_s=None):
        """Log a call decision made by gesture."""
        entry = {
            "timestamp": time.time(),
            "session_id": session_id,
            "decision": decision,
            "gesture": gesture,
            "confidence": confidence,
            "time_to_decision_s": time_to_decision_s,
        }
        self._history.append(entry)
        self.logger.info(
            "Call #%d: %-8s | Gesture: %-12s | Confidence: %s | After: %s",
            session_id,
            decision,
            gesture or "none",
            f"{confidence:.2f}" if confidence is not None else "N/A",
            f"{time_to_decision_s:.1f}s" if time_to_decision_s is not None else "N/A",
        )

    def get_history(self, last_n=None):
        """Get recent decision history."""
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()

    @property
    def total_decisions(self):
        return len(self._history)
