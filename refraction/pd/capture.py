"""Pupillary distance capture at a short, fixed viewing distance.

IPD is read every frame from the eye transforms and averaged over a short
sliding window. A single value is captured once distance, head pose and
ambient light all pass at the same time.
"""

import logging
from collections import deque

import numpy as np

from refraction.config import PDConfig
from refraction.gating.distance import DistanceGate
from refraction.gating.hints import HintKind, HintThrottle
from refraction.gating.posture import StablePose
from refraction.session import prompts
from refraction.tracking.frames import PoseSample

log = logging.getLogger("refraction")


class PDCapture:
    def __init__(self, config: PDConfig | None = None, min_lux: float = 90.0,
                 on_hint=None):
        self._cfg = config if config else PDConfig()
        cfg = self._cfg
        self._min_lux = min_lux
        self._on_hint = on_hint
        self._gate = DistanceGate(
            near_mm=cfg.target_mm - cfg.tolerance_mm,
            far_mm=cfg.target_mm + cfg.tolerance_mm,
            hysteresis_mm=cfg.hysteresis_mm,
            min_dwell_s=cfg.min_dwell_s,
            min_samples=cfg.min_samples,
            hint_cooldown_s=cfg.hint_cooldown_s,
        )
        self._pose_check = StablePose(cfg.yaw_abs, cfg.pitch_abs, cfg.pose_stable_s,
                                      roll_enter_abs=cfg.roll_enter_abs,
                                      roll_exit_abs=cfg.roll_exit_abs)
        self._pose_hints = HintThrottle(cfg.hint_cooldown_s)
        self._ipds = deque(maxlen=cfg.smoothing_window)
        self.reset()

    def reset(self):
        self._gate.reset()
        self._pose_check.reset()
        self._pose_hints.reset()
        self._ipds.clear()
        self._dark_since = None
        self._dark_warned = False
        self.pd_mm = None

    @property
    def ipd_mm(self) -> float | None:
        if not self._ipds:
            return None
        return float(np.mean(self._ipds))

    @property
    def captured(self) -> bool:
        return self.pd_mm is not None

    def _hint(self, kind: HintKind, text: str):
        if self._on_hint is not None:
            self._on_hint(kind, text)

    def mark_gap(self):
        self._gate.mark_gap()

    def light_ok(self, lux: float | None) -> bool:
        return lux is not None and lux >= self._min_lux

    def update(self, pose: PoseSample, lux: float | None) -> float | None:
        """Feed one pose. Returns the captured PD (mm) on the frame it is taken."""
        if self.captured:
            return None
        now = pose.timestamp
        self._ipds.append(pose.ipd_mm)

        self._gate.update(pose.distance_mm, now)
        pose_ok = self._pose_check.update(pose)
        bright = self.light_ok(lux)
        self._track_darkness(lux, now)

        request = self._gate.hint(now)
        if request is not None:
            self._hint(HintKind.DISTANCE, prompts.distance_hint(request[1]))
        elif not self._pose_check.inside and self._pose_hints.try_fire(now):
            self._hint(HintKind.POSE, prompts.POSE_HINT)

        if self._gate.locked and pose_ok and bright:
            self.pd_mm = self.ipd_mm
            log.info(f"PD captured: {self.pd_mm:.1f} mm at {pose.distance_mm:.0f} mm")
            return self.pd_mm
        return None

    def _track_darkness(self, lux: float | None, now: float):
        # One warning per capture, after the light stays low for a while
        if lux is None or lux >= self._min_lux:
            self._dark_since = None
            return
        if self._dark_since is None:
            self._dark_since = now
        if not self._dark_warned and (now - self._dark_since) >= self._cfg.dark_warning_s:
            self._dark_warned = True
            self._hint(HintKind.LIGHT, prompts.LIGHT_HINT)
