import logging
from enum import Enum

log = logging.getLogger("refraction")


class HintKind(Enum):
    DISTANCE = "distance"
    TILT = "tilt"
    EYE_HEIGHT = "eye_height"
    LIGHT = "light"
    POSE = "pose"


class HintThrottle:
    """Allows at most one hint per cooldown interval."""

    def __init__(self, cooldown_s: float):
        if cooldown_s <= 0:
            raise ValueError(f"cooldown must be positive, got {cooldown_s}")
        self._cooldown = cooldown_s
        self._last_at = None

    def ready(self, now: float) -> bool:
        return self._last_at is None or (now - self._last_at) >= self._cooldown

    def try_fire(self, now: float) -> bool:
        """Consume the slot if the cooldown has elapsed. Returns True if allowed."""
        if not self.ready(now):
            log.debug(f"Hint throttled ({now - self._last_at:.2f}s < {self._cooldown}s)")
            return False
        self._last_at = now
        return True

    def reset(self):
        self._last_at = None
