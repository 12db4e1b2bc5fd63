from dataclasses import dataclass
from enum import Enum

import numpy as np


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class FaceFrame:
    """One face-tracking tick. Transforms are 4x4 column-major-style
    homogeneous matrices (translation in column 3), in world space except
    the eye transforms, which are relative to the face."""

    timestamp: float
    face_transform: np.ndarray
    left_eye_transform: np.ndarray
    right_eye_transform: np.ndarray
    camera_transform: np.ndarray


@dataclass(frozen=True)
class ExposureSample:
    """Camera exposure parameters for the same tick."""

    duration_s: float
    gain: float


@dataclass(frozen=True)
class MotionSample:
    """Device gravity vector in device coordinates (unit g)."""

    gravity: tuple


@dataclass(frozen=True)
class PoseSample:
    """Pose derived from one FaceFrame.

    pitch_deg is the gesture pitch: world space, folded into [-90, 90],
    positive when the head tips up. yaw/head_pitch/roll describe the face
    relative to the camera (0 when facing it squarely), wrapped into
    (-180, 180]. delta_z is right-eye depth minus left-eye depth in camera
    space (metres, > 0 when the right eye is farther away).
    """

    timestamp: float
    yaw_deg: float
    pitch_deg: float
    roll_deg: float
    delta_z: float
    distance_mm: float
    eye_height_m: float      # eye centre above the camera, world y
    ipd_mm: float
    head_pitch_deg: float = 0.0
