from dataclasses import dataclass

from refraction.config import GestureConfig
from refraction.tracking.frames import Direction, PoseSample


@dataclass(frozen=True)
class GestureThresholds:
    up_deg: float
    down_deg: float
    right_dz: float
    left_dz: float

    @classmethod
    def practice(cls, cfg: GestureConfig) -> "GestureThresholds":
        return cls(cfg.practice_up_deg, cfg.practice_down_deg, cfg.right_dz_m, cfg.left_dz_m)

    @classmethod
    def formal(cls, cfg: GestureConfig) -> "GestureThresholds":
        return cls(cfg.test_up_deg, cfg.test_down_deg, cfg.right_dz_m, cfg.left_dz_m)


def classify(pose: PoseSample, thresholds: GestureThresholds) -> set:
    """Return every direction this single sample crosses. Pure."""
    hits = set()
    if pose.pitch_deg >= thresholds.up_deg:
        hits.add(Direction.UP)
    if pose.pitch_deg <= thresholds.down_deg:
        hits.add(Direction.DOWN)
    if pose.delta_z >= thresholds.right_dz:
        hits.add(Direction.RIGHT)
    if pose.delta_z <= thresholds.left_dz:
        hits.add(Direction.LEFT)
    return hits


class GestureWindow:
    """Listening window for one trial.

    Hit flags are a cumulative OR over every sample seen while open; a later
    sample never clears an earlier hit. Only reset() clears them.
    """

    def __init__(self):
        self.is_open = False
        self.deadline = None
        self.hit_up = False
        self.hit_down = False
        self.hit_left = False
        self.hit_right = False

    def reset(self):
        self.is_open = False
        self.deadline = None
        self.hit_up = self.hit_down = self.hit_left = self.hit_right = False

    def open(self, deadline: float):
        self.reset()
        self.is_open = True
        self.deadline = deadline

    def close(self):
        self.is_open = False

    def update(self, pose: PoseSample, thresholds: GestureThresholds) -> bool:
        """Accumulate hits from one sample. Ignored when closed. Returns is_open."""
        if not self.is_open:
            return False
        for direction in classify(pose, thresholds):
            self._set(direction)
        return True

    def _set(self, direction: Direction):
        if direction is Direction.UP:
            self.hit_up = True
        elif direction is Direction.DOWN:
            self.hit_down = True
        elif direction is Direction.LEFT:
            self.hit_left = True
        elif direction is Direction.RIGHT:
            self.hit_right = True

    def is_hit(self, direction: Direction) -> bool:
        return {
            Direction.UP: self.hit_up,
            Direction.DOWN: self.hit_down,
            Direction.LEFT: self.hit_left,
            Direction.RIGHT: self.hit_right,
        }[direction]

    @property
    def any_hit(self) -> bool:
        return self.hit_up or self.hit_down or self.hit_left or self.hit_right
