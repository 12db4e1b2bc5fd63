"""Device and head posture checks used alongside the distance lock."""

import math

from refraction.config import PostureConfig
from refraction.tracking.frames import MotionSample, PoseSample
from refraction.utils.math_helpers import clamp


def tilt_from_gravity(gravity) -> float:
    """Lean of the phone away from vertical, degrees."""
    gz = abs(float(gravity[2]))
    return math.degrees(math.asin(clamp(gz, 0.0, 1.0)))


class TiltMonitor:
    """Phone verticality. Passes until a motion sample says otherwise."""

    def __init__(self, limit_deg: float = 5.0):
        self._limit = limit_deg
        self.reset()

    def reset(self):
        self.tilt_deg = None

    def update(self, motion: MotionSample) -> bool:
        self.tilt_deg = tilt_from_gravity(motion.gravity)
        return self.ok

    @property
    def ok(self) -> bool:
        return self.tilt_deg is None or self.tilt_deg <= self._limit


def eye_height_ok(pose: PoseSample, tolerance_m: float) -> bool:
    return abs(pose.eye_height_m) <= tolerance_m


def head_pose_ok(pose: PoseSample, cfg: PostureConfig) -> bool:
    """Frontal head pose for the HUD, from camera-relative angles. Never blocks progression."""
    return (abs(pose.yaw_deg) <= cfg.head_yaw_abs
            and abs(pose.head_pitch_deg) <= cfg.head_pitch_abs
            and abs(pose.roll_deg) <= cfg.head_roll_abs)


class StablePose:
    """Camera-relative yaw/pitch within limits, held continuously for stable_s seconds.

    Limits get a small exit margin so a pose dwelling on the boundary does
    not flicker. With roll limits set, the head must also be level: it
    becomes level at |roll| <= roll_enter_abs and stops being level only
    above roll_exit_abs.
    """

    def __init__(self, yaw_abs: float, pitch_abs: float, stable_s: float,
                 exit_margin_deg: float = 2.0, roll_enter_abs: float | None = None,
                 roll_exit_abs: float | None = None):
        if roll_enter_abs is not None and roll_exit_abs is not None and roll_exit_abs < roll_enter_abs:
            raise ValueError(f"roll exit ({roll_exit_abs}) must not be below enter ({roll_enter_abs})")
        self._yaw_abs = yaw_abs
        self._pitch_abs = pitch_abs
        self._stable_s = stable_s
        self._margin = exit_margin_deg
        self._roll_enter = roll_enter_abs
        self._roll_exit = roll_exit_abs if roll_exit_abs is not None else roll_enter_abs
        self.reset()

    def reset(self):
        self._inside = False
        self._roll_level = False
        self._since = None
        self.ok = False

    def _update_roll(self, roll_deg: float) -> bool:
        if self._roll_enter is None:
            return True
        roll = abs(roll_deg)
        if self._roll_level:
            self._roll_level = roll <= self._roll_exit
        else:
            self._roll_level = roll <= self._roll_enter
        return self._roll_level

    def update(self, pose: PoseSample, now: float | None = None) -> bool:
        now = pose.timestamp if now is None else now
        margin = self._margin if self._inside else 0.0
        level = self._update_roll(pose.roll_deg)
        self._inside = (abs(pose.yaw_deg) <= self._yaw_abs + margin
                        and abs(pose.head_pitch_deg) <= self._pitch_abs + margin
                        and level)
        if self._inside:
            if self._since is None:
                self._since = now
        else:
            self._since = None
        self.ok = self._since is not None and (now - self._since) >= self._stable_s
        return self.ok

    @property
    def inside(self) -> bool:
        """Within limits on the latest sample, before the stable-time requirement."""
        return self._inside
