from dataclasses import dataclass
from enum import Enum


class Eye(Enum):
    RIGHT = "right"
    LEFT = "left"


class Adaptation(Enum):
    PRIMARY = "blue"
    SECONDARY = "white"


class TestPhase(Enum):
    PRACTICE = ("practice", None, None)
    DISTANCE_LOCK = ("distance_lock", None, None)
    BLUE_RIGHT = ("blue_right", Eye.RIGHT, Adaptation.PRIMARY)
    BLUE_LEFT = ("blue_left", Eye.LEFT, Adaptation.PRIMARY)
    WHITE_RIGHT = ("white_right", Eye.RIGHT, Adaptation.SECONDARY)
    WHITE_LEFT = ("white_left", Eye.LEFT, Adaptation.SECONDARY)
    DONE = ("done", None, None)

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def eye(self) -> Eye | None:
        return self.value[1]

    @property
    def adaptation(self) -> Adaptation | None:
        return self.value[2]

    @property
    def is_trial(self) -> bool:
        return self.eye is not None


# Trial phase -> what follows it. None means re-lock distance first.
NEXT_AFTER_TRIAL = {
    TestPhase.BLUE_RIGHT: TestPhase.BLUE_LEFT,
    TestPhase.BLUE_LEFT: None,
    TestPhase.WHITE_RIGHT: TestPhase.WHITE_LEFT,
    TestPhase.WHITE_LEFT: TestPhase.DONE,
}
RELOCK_TARGET = {
    TestPhase.BLUE_LEFT: TestPhase.WHITE_RIGHT,
}


@dataclass
class EyeResult:
    """Per-eye thresholds; each field is written once per session."""

    blue_threshold: float | None = None
    white_threshold: float | None = None

    def record(self, adaptation: Adaptation, score: float):
        attr = "blue_threshold" if adaptation is Adaptation.PRIMARY else "white_threshold"
        if getattr(self, attr) is not None:
            raise ValueError(f"{attr} already recorded")
        setattr(self, attr, score)

    @property
    def complete(self) -> bool:
        return self.blue_threshold is not None and self.white_threshold is not None

    def as_dict(self) -> dict:
        return {"blue": self.blue_threshold, "white": self.white_threshold}
