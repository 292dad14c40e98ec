#!/usr/bin/env python3

from __future__ import annotations

import concurrent.futures
import logging
import os
import typing as _t
from concurrent.futures import ThreadPoolExecutor

import mediapipe as mp

from examgaze.errors import LandmarkModelError

logger = logging.getLogger(__name__)

MIN_DETECTION_CONFIDENCE = 0.7
MIN_TRACKING_CONFIDENCE = 0.7
CREATE_TIMEOUT_S = 5.5


def first_face_landmarks(results: _t.Any) -> _t.Optional[_t.Any]:
    """Landmarks of the first detected face from either mediapipe runtime, else None."""
    faces = getattr(results, "multi_face_landmarks", None)
    if faces:
        return faces[0].landmark
    faces = getattr(results, "face_landmarks", None)
    if faces:
        return faces[0]
    return None


def _create_with_timeout(factory: _t.Callable[..., _t.Any], *args: _t.Any, timeout_s: float = CREATE_TIMEOUT_S) -> _t.Any:
    # A hung factory is abandoned on its worker thread rather than joined.
    ex = ThreadPoolExecutor(max_workers=1)
    try:
        future = ex.submit(factory, *args)
        try:
            return future.result(timeout=timeout_s)
        except concurrent.futures.TimeoutError as exc:
            raise LandmarkModelError("FaceLandmarker initialization timed out on this runtime.") from exc
        except Exception as exc:
            raise LandmarkModelError(f"FaceLandmarker initialization failed: {exc}") from exc
    finally:
        ex.shutdown(wait=False, cancel_futures=True)


class MediaPipeFaceMeshBackend:
    """Landmark source over the two supported mediapipe runtimes.

    Both are configured for a single face with iris refinement, which is what
    puts the iris centers at indexes 468 and 473.
    """

    def __init__(self, face_landmarker_task: str = "", *, frame_interval_ms: int = 33) -> None:
        self.face_landmarker_task = face_landmarker_task
        self.frame_interval_ms = max(1, int(frame_interval_ms))
        self._backend = "unknown"
        self.face_mesh = None
        self._face_landmarker = None
        self._tasks_image = None
        self._tasks_image_format = None
        self._tasks_timestamp_ms = 0

        self._init_face_mesh_backend()
        logger.info("[Tracker] face mesh backend: %s", self._backend)

    @property
    def backend(self) -> str:
        return self._backend

    def _init_face_mesh_backend(self) -> None:
        if hasattr(mp, "solutions"):
            self._backend = "solutions"
            try:
                self.face_mesh = mp.solutions.face_mesh.FaceMesh(
                    static_image_mode=False,
                    max_num_faces=1,
                    refine_landmarks=True,
                    min_detection_confidence=MIN_DETECTION_CONFIDENCE,
                    min_tracking_confidence=MIN_TRACKING_CONFIDENCE,
                )
            except Exception as exc:
                raise LandmarkModelError(f"FaceMesh initialization failed: {exc}") from exc
            return

        if hasattr(mp, "tasks"):
            try:
                from mediapipe.tasks.python.core.base_options import BaseOptions
                from mediapipe.tasks.python.vision import face_landmarker
                from mediapipe.tasks.python.vision.core.image import Image, ImageFormat
                from mediapipe.tasks.python.vision.core.vision_task_running_mode import (
                    VisionTaskRunningMode,
                )
            except ImportError as exc:
                raise LandmarkModelError(
                    "Mediapipe tasks backend is present but required symbols are missing: "
                    f"{exc}"
                ) from exc

            model_path = self.face_landmarker_task
            if not model_path:
                raise LandmarkModelError(
                    "Mediapipe 'tasks' package is installed, but no task model file is configured. "
                    "Pass --face-landmarker-task /path/to/face_landmarker.task"
                )
            if not os.path.exists(model_path):
                raise LandmarkModelError(
                    f"Face landmarker task model not found: {model_path}. "
                    "Download a Mediapipe FaceLandmarker task model and pass its path."
                )

            options = face_landmarker.FaceLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=model_path),
                running_mode=VisionTaskRunningMode.VIDEO,
                min_tracking_confidence=MIN_TRACKING_CONFIDENCE,
                min_face_detection_confidence=MIN_DETECTION_CONFIDENCE,
                min_face_presence_confidence=MIN_DETECTION_CONFIDENCE,
                num_faces=1,
            )
            self._face_landmarker = _create_with_timeout(
                face_landmarker.FaceLandmarker.create_from_options, options
            )

            self._backend = "tasks"
            self._tasks_image = Image
            self._tasks_image_format = ImageFormat
            return

        raise LandmarkModelError("Mediapipe SDK has neither 'solutions' nor 'tasks'.")

    def run_face_mesh(self, frame_rgb) -> _t.Any:
        if self._backend == "solutions":
            return self.face_mesh.process(frame_rgb)

        if self._face_landmarker is None:
            raise LandmarkModelError("Tasks backend not initialized")
        self._tasks_timestamp_ms += self.frame_interval_ms
        mp_image = self._tasks_image(image_format=self._tasks_image_format.SRGB, data=frame_rgb)
        return self._face_landmarker.detect_for_video(mp_image, int(self._tasks_timestamp_ms))

    def detect(self, frame_rgb) -> _t.Optional[_t.Any]:
        return first_face_landmarks(self.run_face_mesh(frame_rgb))

    def close(self) -> None:
        if self._backend == "solutions" and self.face_mesh is not None:
            self.face_mesh.close()
        elif self._face_landmarker is not None and hasattr(self._face_landmarker, "close"):
            self._face_landmarker.close()
