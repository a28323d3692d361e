"""
Tests for Event Bus
====================
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gesture_call.core.events import EventBus, Events


class TestEventBus:
    """Test suite for EventBus."""

    @pytest.fixture
    def bus(self):
        return EventBus(max_history=3)

    def test_emit_to_subscribers(self, bus):
        handler = Mock()
        bus.subscribe(Events.CALL_STARTED, handler)

        bus.emit(Events.CALL_STARTED, session_id=7)

        handler.assert_called_once_with(session_id=7)

    def test_other_events_not_delivered(self, bus):
        handler = Mock()
        bus.subscribe(Events.CALL_STARTED, handler)

        bus.emit(Events.CALL_ENDED, session_id=7)

        handler.assert_not_called()

    def test_priority_order(self, bus):
        order = []
        bus.subscribe(Events.CALL_DECIDED, lambda **kw: order.append("low"), priority=0)
        bus.subscribe(Events.CALL_DECIDED, lambda **kw: order.append("high"), priority=10)

        bus.emit(Events.CALL_DECIDED)

        assert order == ["high", "low"]

    def test_failing_handler_isolated(self, bus):
        good = Mock()
        bus.subscribe(Events.CALL_DECIDED, Mock(side_effect=ValueError("boom")), priority=5)
        bus.subscribe(Events.CALL_DECIDED, good)

        bus.emit(Events.CALL_DECIDED, decision="accepted")

        good.assert_called_once_with(decision="accepted")

    def test_unsubscribe(self, bus):
        handler = Mock()
        bus.subscribe(Events.CALL_ENDED, handler)
        bus.unsubscribe(Events.CALL_ENDED, handler)

        bus.emit(Events.CALL_ENDED)

        handler.assert_not_called()

    def test_clear(self, bus):
        bus.subscribe(Events.CALL_STARTED, Mock())
        bus.subscribe(Events.CALL_ENDED, Mock())
        assert bus.listener_count == 2

        bus.clear(Events.CALL_STARTED)
        assert bus.listener_count == 1

        bus.clear()
        assert bus.listener_count == 0

    def test_history_bounded(self, bus):
        for i in range(5):
            bus.emit(Events.GESTURE_DETECTED, index=i)

        history = bus.get_history(last_n=10)

        assert len(history) == 3
        assert history[-1]["event"] == Events.GESTURE_DETECTED
        assert history[-1]["data_keys"] == ["index"]

    def test_instances_are_independent(self):
        first, second = EventBus(), EventBus()
        handler = Mock()
        first.subscribe(Events.CALL_STARTED, handler)

        second.emit(Events.CALL_STARTED)

        handler.assert_not_called()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
