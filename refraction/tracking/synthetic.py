"""Build FaceFrames from a handful of pose parameters.

Used by the scripted replay and the bench tools to exercise the engine
without a face-tracking camera. The camera sits at the world origin with
identity orientation; the face is placed straight ahead (negative z)
facing the camera.
"""

import math

import numpy as np

from refraction.tracking.frames import FaceFrame
from refraction.utils.math_helpers import clamp

DEFAULT_IPD_M = 0.063


def _translation(x: float, y: float, z: float) -> np.ndarray:
    m = np.eye(4)
    m[:3, 3] = (x, y, z)
    return m


def _rot_x(deg: float) -> np.ndarray:
    a = math.radians(deg)
    c, s = math.cos(a), math.sin(a)
    m = np.eye(4)
    m[1, 1], m[1, 2] = c, -s
    m[2, 1], m[2, 2] = s, c
    return m


def _rot_y(deg: float) -> np.ndarray:
    a = math.radians(deg)
    c, s = math.cos(a), math.sin(a)
    m = np.eye(4)
    m[0, 0], m[0, 2] = c, s
    m[2, 0], m[2, 2] = -s, c
    return m


def make_frame(timestamp: float, distance_mm: float = 1200.0, pitch_deg: float = 0.0,
               delta_z: float = 0.0, eye_height_m: float = 0.0,
               ipd_m: float = DEFAULT_IPD_M) -> FaceFrame:
    """Return a frame whose computed pose matches the given parameters.

    delta_z is produced by turning the head about the vertical axis, so it
    is limited to +/- ipd_m.
    """
    d = distance_mm / 1000.0
    y = eye_height_m
    z = -math.sqrt(max(d * d - y * y, 0.0))

    yaw = math.degrees(math.asin(clamp(delta_z / ipd_m, -1.0, 1.0)))
    # Rotating by -pitch about x tips the face z-axis up by +pitch
    face = _translation(0.0, y, z) @ _rot_y(yaw) @ _rot_x(-pitch_deg)

    half = ipd_m / 2.0
    return FaceFrame(
        timestamp=timestamp,
        face_transform=face,
        left_eye_transform=_translation(half, 0.0, 0.0),
        right_eye_transform=_translation(-half, 0.0, 0.0),
        camera_transform=np.eye(4),
    )


def exposure_for_lux(lux: float, gain: float = 100.0, k: float = 12.5,
                     aperture: float = 2.2, reflectance: float = 0.18):
    """Inverse of the light meter relation: exposure time that reads as `lux`."""
    luminance = lux * reflectance / math.pi
    return (k * aperture * aperture) / (luminance * gain), gain


def gravity_for_tilt(tilt_deg: float) -> tuple:
    """Gravity vector of a phone leaning back by tilt_deg from vertical."""
    a = math.radians(tilt_deg)
    return (0.0, -math.cos(a), -math.sin(a))
