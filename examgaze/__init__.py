"""Webcam gaze-direction monitoring for exam sessions."""

from examgaze.config import GazeConfig
from examgaze.direction import GazeDirection
from examgaze.emission import GazeEvent
from examgaze.gaze_processing import FrameResult, GazeSession

__all__ = [
    "FrameResult",
    "GazeConfig",
    "GazeDirection",
    "GazeEvent",
    "GazeSession",
]
