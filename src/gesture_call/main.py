"""
Gesture Call Control - Main Application
=========================================

Entry point for the touchless call control demo.
Wires camera, recognizer, detection loop and call state machine together
and runs the display loop.
"""

import cv2
import logging
import argparse
import signal
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .capture.camera import AcquisitionError, Camera, CameraConfig
from .call.feedback import DecisionFeedback
from .call.session import CallDecision, CallPhase
from .call.state_machine import CallConfig, CallStateMachine
from .core.detection_loop import DetectionLoop
from .core.events import EventBus, Events
from .recognition.recognizer import RecognizerConfig, RecognizerProvider
from .utils.config import DEFAULT_CONFIG_PATH, load_config
from .utils.logger import CallLogger, setup_logging
from .utils.performance import PerformanceMonitor
from .utils.visualization import OverlayRenderer, OverlayStyle

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    """Application configuration container."""
    camera: CameraConfig = field(default_factory=CameraConfig)
    recognizer: RecognizerConfig = field(default_factory=RecognizerConfig)
    call: CallConfig = field(default_factory=CallConfig)
    visualization: OverlayStyle = field(default_factory=OverlayStyle)
    window_name: str = "Gesture Call Control"
    performance_target_fps: float = 25.0
    performance_window: int = 30


def create_app_config(config_dict: dict) -> AppConfig:
    """Create AppConfig from configuration dictionary."""
    visualization = config_dict.get("visualization", {})
    performance = config_dict.get("performance", {})
    return AppConfig(
        camera=CameraConfig.from_dict(config_dict.get("camera", {})),
        recognizer=RecognizerConfig.from_dict(config_dict.get("recognizer", {})),
        call=CallConfig.from_dict(config_dict.get("call", {})),
        visualization=OverlayStyle.from_dict(visualization),
        window_name=visualization.get("window_name", "Gesture Call Control"),
        performance_target_fps=performance.get("target_fps", 25.0),
        performance_window=performance.get("metrics_window", 30),
    )


class GestureCallApp:
    """
    Touchless call control application.

    Coordinates:
    - Camera capture (live preview)
    - Gesture model loading (background) and recognition (worker thread)
    - Call state machine (ringing / accepted / declined)
    - Overlays: hand skeleton, status, call banner, decision feedback

    Keyboard:
    - c: simulate an incoming call
    - e: end the call
    - r: retry a failed model load
    - p: print performance report
    - q/ESC: quit
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        camera: Optional[Camera] = None,
        provider: Optional[RecognizerProvider] = None,
    ):
        self.config = config or AppConfig()

        self.events = EventBus()
        self.camera = camera or Camera(self.config.camera)
        self.provider = provider or RecognizerProvider(self.config.recognizer, event_bus=self.events)
        self.state_machine = CallStateMachine(self.config.call, event_bus=self.events)
        self.renderer = OverlayRenderer(self.config.visualization)
        self.feedback = DecisionFeedback(self.events)
        self.performance = PerformanceMonitor(window_size=self.config.performance_window)
        self.performance.target_fps = self.config.performance_target_fps
        self.loop = DetectionLoop(
            self.provider,
            self.camera,
            self.renderer,
            self.state_machine,
            event_bus=self.events,
            performance=self.performance,
        )

        self.call_log = CallLogger()
        self.events.subscribe(Events.CALL_STARTED, self._on_call_started)
        self.events.subscribe(Events.CALL_DECIDED, self._on_call_decided)

        self._camera_error: Optional[str] = None
        self._running = False

    # --- Control surface --------------------------------------------------

    def start_call(self) -> bool:
        """Simulate an incoming call. Refused until the model is loaded."""
        if not self.provider.ready:
            logger.info("Start call ignored: model not loaded")
            return False
        self.state_machine.start_call()
        return True

    def end_call(self) -> None:
        self.state_machine.end_call()

    def retry_model(self) -> bool:
        return self.provider.retry()

    @property
    def status(self) -> str:
        """Application status line."""
        if self._camera_error:
            return f"Camera unavailable: {self._camera_error}"
        state = self.provider.state
        if state == RecognizerProvider.READY:
            return "Model loaded! Press C to simulate a call"
        if state == RecognizerProvider.FAILED:
            return f"Model load error: {self.provider.error}"
        return "Loading model..."

    @property
    def call_status(self) -> str:
        return self.state_machine.call_status

    # --- Lifecycle --------------------------------------------------------

    def start(self) -> None:
        """Start the model load and the camera. Failures show in ``status``."""
        logger.info("Starting Gesture Call Control...")
        self.provider.initialize_async()

        try:
            self.camera.acquire()
        except AcquisitionError as e:
            self._camera_error = str(e)
            logger.error("Camera unavailable: %s", e)
            self.events.emit(Events.CAMERA_ERROR, error=e)

        self.performance.start()
        self._running = True
        self.events.emit(Events.SYSTEM_STARTED)

    def stop(self) -> None:
        """Stop all components."""
        logger.info("Stopping Gesture Call Control...")
        self._running = False
        self.events.emit(Events.SYSTEM_SHUTDOWN)

        self.loop.stop(wait=True)
        self.camera.stop()
        self.provider.close()
        self.performance.stop()
        cv2.destroyAllWindows()
        logger.info("Gesture Call Control stopped (%d decisions)", self.call_log.total_decisions)

    def run(self) -> None:
        """Run the display loop until quit."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.start()
        try:
            while self._running:
                self.performance.frame_start()
                with self.performance.measure("render"):
                    display = self.render_frame()
                cv2.imshow(self.config.window_name, display)
                self.performance.frame_complete()

                self.handle_key(cv2.waitKey(1) & 0xFF)
        finally:
            self.stop()
            self._print_final_report()

    def render_frame(self) -> np.ndarray:
        """Produce one display frame: detection canvas or raw preview, plus overlays."""
        canvas = self.loop.tick()
        if canvas is None:
            canvas = self._preview_canvas()

        self.renderer.draw_status(canvas, self._status_lines())
        self.renderer.draw_call_banner(canvas, self.call_status, self._banner_color())
        self.feedback.render(canvas)
        self.renderer.draw_performance(canvas, self.performance.fps)
        return canvas

    def handle_key(self, key: int) -> None:
        if key == ord("q") or key == 27:
            self._running = False
        elif key == ord("c"):
            self.start_call()
        elif key == ord("e"):
            self.end_call()
        elif key == ord("r"):
            self.retry_model()
        elif key == ord("p"):
            print(self.performance.get_report())

    # --- Helpers ----------------------------------------------------------

    def _preview_canvas(self) -> np.ndarray:
        """Raw camera frame while the loop is not ready; black if there is none."""
        frame = self.camera.read()
        if frame is not None and not frame.is_empty:
            return self.renderer.make_canvas(frame.image)
        width = self.config.visualization.canvas_width or self.config.camera.width
        height = self.config.visualization.canvas_height or self.config.camera.height
        return np.zeros((height, width, 3), dtype=np.uint8)

    def _status_lines(self) -> List[str]:
        return [f"Status: {self.status}"]

    def _banner_color(self):
        style = self.config.visualization
        decision = self.state_machine.decision
        if decision is CallDecision.ACCEPTED:
            return style.accepted_color
        if decision is CallDecision.DECLINED:
            return style.declined_color
        if self.state_machine.phase is CallPhase.RINGING:
            return style.ringing_color
        return None

    def _on_call_started(self, session_id, **kwargs):
        self.call_log.log_call_started(session_id)

    def _on_call_decided(self, session_id, decision, gesture=None, confidence=None,
                         time_to_decision=None, **kwargs):
        self.call_log.log_decision(
            session_id,
            decision.value,
            gesture=gesture.value if gesture is not None else None,
            confidence=confidence,
            time_to_decision_s=time_to_decision,
        )

    def _signal_handler(self, signum, frame) -> None:
        """Handle shutdown signals."""
        logger.info("Received signal %d, shutting down...", signum)
        self._running = False

    def _print_final_report(self) -> None:
        """Print final performance report."""
        print("\n" + "=" * 50)
        print("FINAL PERFORMANCE REPORT")
        print("=" * 50)
        print(self.performance.get_report())
        print(f"Detection cycles: {self.loop.stats.cycles} "
              f"(not ready: {self.loop.stats.not_ready}, errors: {self.loop.stats.errors})")
        print("=" * 50)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Gesture Call Control - accept or decline calls with hand gestures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Keyboard Controls:
  c         - Simulate an incoming call
  e         - End the call
  r         - Retry loading the gesture model
  p         - Print performance report
  q/ESC     - Quit

Gestures (while ringing):
  Thumb up    - Accept
  Closed fist - Decline

Examples:
  gesture-call
  gesture-call --camera 1 --debug
  gesture-call --config custom_config.yaml
        """
    )

    parser.add_argument(
        "--config", "-c",
        default=str(DEFAULT_CONFIG_PATH),
        help="Path to configuration file"
    )

    parser.add_argument(
        "--camera",
        type=int,
        default=None,
        help="Camera device index (overrides config)"
    )

    parser.add_argument(
        "--model",
        default=None,
        help="Path to gesture_recognizer.task (overrides config)"
    )

    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file (rotating)"
    )

    args = parser.parse_args()

    config_dict = load_config(args.config)

    log_config = config_dict.get("logging", {})
    setup_logging(
        level="DEBUG" if args.debug else log_config.get("level", "INFO"),
        log_file=args.log_file or log_config.get("file"),
        max_size_mb=log_config.get("max_size_mb", 10),
        backup_count=log_config.get("backup_count", 3),
    )

    app_config = create_app_config(config_dict)
    if args.camera is not None:
        app_config.camera.device_id = args.camera
    if args.model:
        app_config.recognizer.model_path = args.model

    app = GestureCallApp(app_config)
    app.run()


if __name__ == "__main__":
    main()
