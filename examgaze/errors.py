#!/usr/bin/env python3

from __future__ import annotations


class GazeTrackingError(RuntimeError):
    """Base class for failures the tracker cannot recover from on its own."""


class LandmarkSourceError(GazeTrackingError):
    """The pipeline can never receive real landmark data."""


class CameraAccessError(LandmarkSourceError):
    pass


class LandmarkModelError(LandmarkSourceError):
    pass


class IncompleteLandmarksError(GazeTrackingError, ValueError):
    def __init__(self, count: int, required: int) -> None:
        super().__init__(
            f"landmark set has {count} points but index {required - 1} is required; "
            "is iris refinement enabled on the face mesh?"
        )
        self.count = count
        self.required = required
