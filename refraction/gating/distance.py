"""Distance zone classification with hysteresis and a dwell-time lock.

Zones:
    NEAR ─(> near)─> OK ─(> far + h)─> FAR
    NEAR <─(< near - h)─ OK <─(< far)─ FAR

The lock requires the zone to stay OK continuously for min_dwell seconds
(and, for PD capture, a minimum number of samples). A gap in the distance
stream pauses the dwell clock; the interval across the gap never counts.
"""

import logging
from enum import Enum

from refraction.gating.hints import HintKind, HintThrottle

log = logging.getLogger("refraction")


class DistanceZone(Enum):
    NEAR = "near"
    OK = "ok"
    FAR = "far"


class DistanceGate:
    def __init__(self, near_mm: float, far_mm: float, hysteresis_mm: float = 0.0,
                 min_dwell_s: float = 0.6, min_samples: int = 1,
                 hint_cooldown_s: float = 3.0):
        if near_mm >= far_mm:
            raise ValueError(f"near ({near_mm}) must be below far ({far_mm})")
        self._near = near_mm
        self._far = far_mm
        self._hyst = hysteresis_mm
        self._min_dwell = min_dwell_s
        self._min_samples = min_samples
        self._throttle = HintThrottle(hint_cooldown_s)
        self.reset()

    @classmethod
    def from_config(cls, cfg) -> "DistanceGate":
        return cls(cfg.near_mm, cfg.far_mm, cfg.hysteresis_mm,
                   cfg.min_dwell_s, cfg.min_samples, cfg.hint_cooldown_s)

    def reset(self):
        self.zone = None
        self.distance_mm = None
        self._dwell = 0.0
        self._ok_samples = 0
        self._last_ok_at = None
        self._throttle.reset()

    @property
    def dwell_s(self) -> float:
        return self._dwell

    @property
    def locked(self) -> bool:
        return (self.zone is DistanceZone.OK
                and self._dwell >= self._min_dwell
                and self._ok_samples >= self._min_samples)

    def _classify(self, d: float) -> DistanceZone:
        if self.zone is None:
            if d < self._near:
                return DistanceZone.NEAR
            if d > self._far:
                return DistanceZone.FAR
            return DistanceZone.OK

        if self.zone is DistanceZone.FAR:
            if d >= self._far:
                return DistanceZone.FAR
            return DistanceZone.NEAR if d < self._near - self._hyst else DistanceZone.OK
        if self.zone is DistanceZone.NEAR:
            if d <= self._near:
                return DistanceZone.NEAR
            return DistanceZone.FAR if d > self._far + self._hyst else DistanceZone.OK
        # OK
        if d > self._far + self._hyst:
            return DistanceZone.FAR
        if d < self._near - self._hyst:
            return DistanceZone.NEAR
        return DistanceZone.OK

    def update(self, distance_mm: float, timestamp: float) -> DistanceZone:
        """Feed one sample. Returns the (possibly unchanged) zone."""
        zone = self._classify(distance_mm)
        if zone is not self.zone:
            log.debug(f"Distance zone {self.zone} -> {zone} at {distance_mm:.0f} mm")
        self.zone = zone
        self.distance_mm = distance_mm

        if zone is DistanceZone.OK:
            if self._last_ok_at is not None:
                self._dwell += timestamp - self._last_ok_at
            self._last_ok_at = timestamp
            self._ok_samples += 1
        else:
            self.interrupt()
        return zone

    def mark_gap(self):
        """Distance source unavailable this tick: the dwell clock does not advance."""
        self._last_ok_at = None

    def interrupt(self):
        """Restart the dwell wait without changing the zone."""
        self._dwell = 0.0
        self._ok_samples = 0
        self._last_ok_at = None

    def hint(self, now: float):
        """Rate-limited hint request while outside the OK zone, else None."""
        if self.zone is None or self.zone is DistanceZone.OK:
            return None
        if not self._throttle.try_fire(now):
            return None
        return HintKind.DISTANCE, self.zone
