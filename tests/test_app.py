"""
Tests for the Application Wiring
=================================

Camera and model are replaced by fakes; the display window is mocked.
"""

import pytest
import numpy as np
import sys
from pathlib import Path
from unittest.mock import Mock, patch

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gesture_call.call.session import CallDecision, CallPhase
from gesture_call.capture.camera import AcquisitionError, Frame
from gesture_call.main import AppConfig, GestureCallApp, create_app_config
from gesture_call.recognition.recognizer import RecognizerInitError, RecognizerProvider
from gesture_call.recognition.types import (
    GestureCategory,
    GestureLabel,
    HandLandmarks,
    Landmark,
    RecognitionResult,
)


class FakeCamera:
    def __init__(self, error=None):
        self.error = error
        self.stopped = False
        self.image = np.full((480, 640, 3), 80, dtype=np.uint8)

    def acquire(self):
        if self.error:
            raise AcquisitionError(self.error)

    def read(self):
        if self.error:
            return None
        return Frame(image=self.image, timestamp=0.0, frame_number=1)

    def stop(self):
        self.stopped = True


def thumb_up_recognizer():
    recognizer = Mock()
    recognizer.recognize.return_value = RecognitionResult(
        hands=[HandLandmarks(landmarks=[Landmark(0.5, 0.5, 0.0)] * 21)],
        gestures=[[GestureCategory(GestureLabel.THUMB_UP, 0.93)]],
    )
    return recognizer


@pytest.fixture(autouse=True)
def mock_window():
    with patch("gesture_call.main.cv2") as mock:
        yield mock


@pytest.fixture
def make_app():
    apps = []

    def factory(factory=None, camera=None):
        provider = RecognizerProvider(factory=factory or thumb_up_recognizer)
        app = GestureCallApp(AppConfig(), camera=camera or FakeCamera(), provider=provider)
        apps.append(app)
        return app

    yield factory
    for app in apps:
        app.stop()


class TestCreateAppConfig:
    def test_from_dict(self):
        config = create_app_config({
            "camera": {"device_id": 1},
            "call": {"accept_gesture": "Open_Palm"},
            "visualization": {"window_name": "Calls", "canvas_width": 320, "canvas_height": 240},
            "performance": {"target_fps": 15},
        })

        assert config.camera.device_id == 1
        assert config.call.accept_gesture is GestureLabel.OPEN_PALM
        assert config.window_name == "Calls"
        assert config.visualization.canvas_width == 320
        assert config.performance_target_fps == 15

    def test_empty(self):
        config = create_app_config({})

        assert config.window_name == "Gesture Call Control"
        assert config.call.accept_gesture is GestureLabel.THUMB_UP


class TestStatus:
    """Status line and the start-call gate."""

    def test_loading(self, make_app):
        app = make_app()

        assert app.status == "Loading model..."
        assert app.start_call() is False
        assert app.state_machine.phase is CallPhase.IDLE

    def test_loaded(self, make_app):
        app = make_app()
        app.start()
        assert app.provider.wait(timeout=2.0)

        assert app.status == "Model loaded! Press C to simulate a call"
        assert app.start_call() is True
        assert app.call_status.startswith("Incoming call")

    def test_load_error_and_retry(self, make_app):
        factory = Mock(side_effect=[RecognizerInitError("download failed"), thumb_up_recognizer()])
        app = make_app(factory=factory)
        app.start()
        app.provider.wait(timeout=2.0)

        assert app.status == "Model load error: download failed"
        assert app.start_call() is False

        app.handle_key(ord("r"))
        assert app.provider.wait(timeout=2.0)
        assert app.status.startswith("Model loaded!")

    def test_camera_unavailable(self, make_app):
        app = make_app(camera=FakeCamera(error="cannot open camera device 0"))
        app.start()
        app.provider.wait(timeout=2.0)

        assert app.status == "Camera unavailable: cannot open camera device 0"
        display = app.render_frame()
        assert display.shape == (480, 640, 3)
        assert app.loop.stats.not_ready >= 1


class TestCallFlow:
    """End to end: ring, recognize, decide."""

    @pytest.fixture
    def app(self, make_app):
        app = make_app()
        app.start()
        assert app.provider.wait(timeout=2.0)
        return app

    def test_preview_before_call(self, app):
        display = app.render_frame()

        assert display.shape == (480, 640, 3)
        app.provider.recognizer.recognize.assert_not_called()

    def test_accept_by_gesture(self, app):
        app.handle_key(ord("c"))
        app.render_frame()
        assert app.loop.wait_pending(timeout=2.0)
        app.render_frame()

        assert app.state_machine.decision is CallDecision.ACCEPTED
        assert app.call_status == "Call accepted!"
        assert app.feedback.is_active
        assert app.call_log.total_decisions == 1
        entry = app.call_log.get_history()[0]
        assert entry["decision"] == "accepted"
        assert entry["gesture"] == "Thumb_Up"
        assert entry["confidence"] == 0.93

    def test_end_call(self, app):
        app.handle_key(ord("c"))
        app.handle_key(ord("e"))

        assert app.state_machine.phase is CallPhase.IDLE
        assert app.call_status == ""

    def test_quit(self, app):
        app.handle_key(ord("q"))
        assert not app._running

    def test_escape_quits(self, app):
        app.handle_key(27)
        assert not app._running

    def test_stop_releases_resources(self, app, mock_window):
        app.stop()

        assert app.camera.stopped
        assert app.loop.stopped
        assert not app.provider.ready
        mock_window.destroyAllWindows.assert_called()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
