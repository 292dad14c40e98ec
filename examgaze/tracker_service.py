#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import Any, Callable, Optional, Sequence

import cv2

from examgaze.config import CLASSIFICATION_POLICIES, EYE_BOX_STRATEGIES, GazeConfig
from examgaze.emission import EventSink
from examgaze.errors import (
    CameraAccessError,
    GazeTrackingError,
    IncompleteLandmarksError,
    LandmarkModelError,
    LandmarkSourceError,
)
from examgaze.event_bus import SocketEventBus
from examgaze.event_log import DEFAULT_REPORT_NAME, ExamEventLog
from examgaze.filters import now_ms
from examgaze.focus_stats import FocusStats
from examgaze.frame_loop import FrameLoop, LatestLandmarks
from examgaze.gaze_processing import FrameResult, GazeSession

logger = logging.getLogger(__name__)

WINDOW_NAME = "Exam Gaze Tracking"


class GazeTrackerService:
    """Wires camera capture, the face mesh and the gaze session together.

    Capture and landmark detection run on a daemon thread that overwrites a
    single landmark slot; the frame loop runs on the caller's thread.
    """

    def __init__(
        self,
        args: argparse.Namespace,
        *,
        capture: Any = None,
        landmark_source: Any = None,
        event_log: Optional[ExamEventLog] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.args = args
        self.clock = clock
        self.config = GazeConfig.from_args(args)
        self.event_log = event_log or ExamEventLog(
            path=args.log_file or None,
            expiry_s=args.log_expiry_s or None,
        )
        self.event_bus = None if args.no_socket else SocketEventBus(host=args.host, port=args.port, clock=clock)

        self.session = GazeSession(self.config)
        self.slot = LatestLandmarks()
        self.stats = FocusStats(log_interval_ms=int(args.stats_interval_s * 1000))
        self.event_log.stats_provider = self.stats.snapshot
        self.loop = FrameLoop(
            self.session,
            self.slot,
            on_result=self._on_result,
            interval_ms=args.frame_interval_ms,
            clock=clock,
        )

        self._capture_error: Optional[LandmarkSourceError] = None
        self._capture_thread: Optional[threading.Thread] = None
        self._frame_lock = threading.Lock()
        self._latest_frame = None
        self._last_report_ms: Optional[int] = None

        self.cap = capture if capture is not None else self._open_capture()
        self.landmark_source = landmark_source if landmark_source is not None else self._open_landmark_source()

    @property
    def sinks(self) -> list[EventSink]:
        sinks: list[EventSink] = [self.event_log]
        if self.event_bus is not None:
            sinks.append(self.event_bus)
        return sinks

    def _emit(self, event_type: str, category: str, message: str, data: Optional[dict] = None) -> None:
        for sink in self.sinks:
            sink.emit(event_type, category, message, data)

    def _open_capture(self) -> Any:
        source = self.args.video if self.args.video else self.args.camera
        cap = cv2.VideoCapture(source)
        if not cap.isOpened():
            message = f"Unable to open video {source!r}" if self.args.video else f"Unable to open camera {source}"
            self._emit("cameraAccess", "gaze", "Camera error", {"error": message})
            logger.error("[Tracker] %s", message)
            raise CameraAccessError(message)
        try:
            cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        except cv2.error as exc:
            logger.debug("[Tracker] capture buffer size not supported: %s", exc)
        self._emit("cameraAccess", "gaze", "Fake video loaded" if self.args.video else "Camera access granted")
        return cap

    def _open_landmark_source(self) -> Any:
        # mediapipe is only imported once a real camera session is being built.
        from examgaze.face_mesh_backend import MediaPipeFaceMeshBackend

        try:
            return MediaPipeFaceMeshBackend(
                self.args.face_landmarker_task,
                frame_interval_ms=self.args.frame_interval_ms,
            )
        except LandmarkModelError as exc:
            self._emit("cameraAccess", "gaze", "Face landmark model error", {"error": str(exc)})
            logger.error("[Tracker] %s", exc)
            self.cap.release()
            raise

    def _read_frame(self) -> Any:
        ret, frame = self.cap.read()
        if ret:
            return frame
        if self.args.video:
            # Pre-recorded input loops from the start.
            self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            ret, frame = self.cap.read()
            if ret:
                return frame
        return None

    def _capture_loop(self) -> None:
        while not self.loop.stopped:
            frame = self._read_frame()
            if frame is None:
                self._fail_capture(CameraAccessError("camera stopped delivering frames"))
                return
            try:
                frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                face_landmarks = self.landmark_source.detect(frame_rgb)
            except LandmarkSourceError as exc:
                self._fail_capture(exc)
                return
            except Exception as exc:
                error = LandmarkModelError(f"landmark detection failed: {exc}")
                error.__cause__ = exc
                self._fail_capture(error)
                return
            self.slot.put(face_landmarks)
            if self.args.debug:
                with self._frame_lock:
                    self._latest_frame = frame

    def _fail_capture(self, error: LandmarkSourceError) -> None:
        if self.loop.stopped:
            return
        self._capture_error = error
        self.loop.stop()
        logger.error("[Tracker] %s", error)
        self._emit("cameraAccess", "gaze", "Camera error", {"error": str(error)})

    def _on_result(self, result: FrameResult) -> None:
        self.stats.update(result.raw_direction)
        if result.event is not None:
            for sink in self.sinks:
                result.event.emit_to(sink)

        now = self.clock()
        self.stats.maybe_log(now)
        self._maybe_export_report(now)
        if self.args.debug:
            self._show_debug(result)

    def _maybe_export_report(self, now: int, force: bool = False) -> None:
        if not self.args.report_path:
            return
        interval_ms = int(self.args.report_interval_s * 1000)
        if not force:
            if interval_ms <= 0:
                return
            if self._last_report_ms is None:
                self._last_report_ms = now
                return
            if now - self._last_report_ms < interval_ms:
                return
        self._last_report_ms = now
        self.event_log.export_report(self.args.report_path)

    def _show_debug(self, result: FrameResult) -> None:
        from examgaze.visualization import draw_overlay

        with self._frame_lock:
            frame = None if self._latest_frame is None else self._latest_frame.copy()
        if frame is None:
            return
        draw_overlay(frame, result, self.slot.get(), self.config)
        cv2.imshow(WINDOW_NAME, frame)
        key = cv2.waitKey(1) & 0xFF
        if key in (ord("q"), 27):
            logger.info("[Tracker] quit requested from debug window")
            self.loop.stop()

    def stop(self) -> None:
        self.loop.stop()

    def run(self, max_frames: Optional[int] = None) -> None:
        if self.event_bus is not None:
            self.event_bus.start()
        self.session.reset()
        self.slot.clear()
        self.loop.reset()
        self._capture_error = None
        logger.info(
            "[Tracker] Gaze tracker running | window=%d full_buffer=%s policy=%s",
            self.config.smoothing_window_size,
            self.config.full_buffer_required,
            self.config.classification_policy,
        )

        self._capture_thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._capture_thread.start()
        try:
            self.loop.run(max_frames=max_frames)
        except IncompleteLandmarksError as exc:
            logger.error("[Tracker] %s", exc)
            self._emit("cameraAccess", "gaze", "Camera error", {"error": str(exc)})
            raise
        finally:
            self.loop.stop()
            self._shutdown()

        if self._capture_error is not None:
            raise self._capture_error

    def _shutdown(self) -> None:
        if self._capture_thread is not None:
            self._capture_thread.join(timeout=2.0)
            self._capture_thread = None
        try:
            self.cap.release()
        except cv2.error:
            pass
        if self.args.debug:
            try:
                cv2.destroyAllWindows()
            except cv2.error:
                pass
        if self.event_bus is not None:
            self.event_bus.stop()
        self.landmark_source.close()
        self._maybe_export_report(self.clock(), force=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Monitor exam gaze direction from a webcam")
    parser.add_argument("--camera", type=int, default=0, help="camera index")
    parser.add_argument("--video", type=str, default="", help="Pre-recorded video to use instead of a camera.")
    parser.add_argument("--frame-interval-ms", type=int, default=33)
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--no-socket", action="store_true", help="Do not start the TCP event broadcaster.")
    parser.add_argument("--debug", action="store_true", help="Show the camera preview with the gaze overlay.")
    parser.add_argument("--log-level", type=str, default="INFO")

    parser.add_argument("--smoothing-window-size", type=int, default=15)
    parser.add_argument(
        "--require-full-buffer",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Report unknown until the smoothing window is full (default: only for windows above 5).",
    )
    parser.add_argument("--head-turn-threshold", type=float, default=0.05)
    parser.add_argument("--iris-margin-threshold", type=float, default=0.15)
    parser.add_argument("--classification-policy", choices=CLASSIFICATION_POLICIES, default="sequential")
    parser.add_argument("--eye-box-strategy", choices=EYE_BOX_STRATEGIES, default="corners")
    parser.add_argument("--log-interval-ms", type=int, default=1000)
    parser.add_argument("--cooldown-ms", type=int, default=5000)
    parser.add_argument(
        "--mirror-x",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Mirror horizontal gaze for front-facing cameras.",
    )

    parser.add_argument("--log-file", type=str, default="", help="JSON file the event log persists to.")
    parser.add_argument("--log-expiry-s", type=float, default=30.0, help="Drop log entries older than this (0 keeps all).")
    parser.add_argument("--report-path", type=str, default=DEFAULT_REPORT_NAME, help="Empty disables report export.")
    parser.add_argument("--report-interval-s", type=float, default=10.0)
    parser.add_argument("--stats-interval-s", type=float, default=10.0)
    parser.add_argument(
        "--face-landmarker-task",
        type=str,
        default="",
        help="Path to mediapipe face_landmarker.task when using task-based mediapipe builds.",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    level = logging.DEBUG if args.debug else getattr(logging, str(args.log_level).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        service = GazeTrackerService(args)
        service.run()
    except GazeTrackingError as exc:
        logger.error("[Tracker] tracking stopped: %s", exc)
        return 1
    except ValueError as exc:
        logger.error("[Tracker] invalid configuration: %s", exc)
        return 2
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())
