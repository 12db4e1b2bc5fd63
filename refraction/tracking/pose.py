"""Per-frame head pose: gesture pitch, camera-relative yaw/pitch/roll, eye depth separation, distance."""

import numpy as np

from refraction.tracking.frames import FaceFrame, PoseSample
from refraction.utils.math_helpers import degrees_atan2, fold90, wrap180


def _position(m: np.ndarray) -> np.ndarray:
    return m[:3, 3]


def _to_camera_space(world: np.ndarray, camera: np.ndarray) -> np.ndarray:
    v = np.append(world, 1.0)
    return (np.linalg.inv(camera) @ v)[:3]


def unify_pitch(raw_deg: float) -> float:
    """Fold a raw atan2 pitch into [-90, 90] so that up is always positive."""
    return fold90(raw_deg)


def compute_pose(frame: FaceFrame) -> PoseSample:
    """Derive a PoseSample from one FaceFrame. Pure."""
    face = np.asarray(frame.face_transform, dtype=float)
    camera = np.asarray(frame.camera_transform, dtype=float)

    # Gesture pitch from the face z-axis in world space
    raw_pitch = degrees_atan2(face[1, 2], face[2, 2])
    pitch = unify_pitch(raw_pitch)

    left_world = _position(face @ np.asarray(frame.left_eye_transform, dtype=float))
    right_world = _position(face @ np.asarray(frame.right_eye_transform, dtype=float))
    left_cam = _to_camera_space(left_world, camera)
    right_cam = _to_camera_space(right_world, camera)
    delta_z = float(right_cam[2] - left_cam[2])

    # Orientation relative to the camera: right / up / forward basis
    face_in_camera = np.linalg.inv(camera) @ face
    r = face_in_camera[:3, 0]
    u = face_in_camera[:3, 1]
    f = face_in_camera[:3, 2]
    yaw = wrap180(degrees_atan2(f[0], f[2]))
    head_pitch = wrap180(degrees_atan2(f[1], f[2]))
    roll = wrap180(degrees_atan2(r[1], u[1]))

    distance_mm = float(np.linalg.norm(_position(camera) - _position(face)) * 1000.0)
    eye_center = (left_world + right_world) * 0.5
    eye_height = float(eye_center[1] - _position(camera)[1])
    ipd_mm = float(np.linalg.norm(right_world - left_world) * 1000.0)

    return PoseSample(
        timestamp=frame.timestamp,
        yaw_deg=yaw,
        pitch_deg=pitch,
        roll_deg=roll,
        delta_z=delta_z,
        distance_mm=distance_mm,
        eye_height_m=eye_height,
        ipd_mm=ipd_mm,
        head_pitch_deg=head_pitch,
    )
