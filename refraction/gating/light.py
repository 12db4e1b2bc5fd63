import logging
import math

from refraction.config import LightConfig
from refraction.utils.math_helpers import lerp

log = logging.getLogger("refraction")


class LightEstimator:
    """Ambient illuminance from exposure metadata, exponentially smoothed.

    Reflected-light meter: L = K * N^2 / (t * S), then E = (pi / rho) * L.
    """

    def __init__(self, config: LightConfig | None = None):
        self._cfg = config if config else LightConfig()
        self.lux = None

    def reset(self):
        self.lux = None

    def raw_lux(self, exposure_s: float, gain: float) -> float | None:
        if not (exposure_s > 0 and gain > 0):
            return None
        cfg = self._cfg
        luminance = (cfg.calibration_k * cfg.aperture ** 2) / (exposure_s * gain)
        lux = (math.pi / cfg.reflectance) * luminance
        return lux if math.isfinite(lux) else None

    def update(self, exposure_s: float, gain: float) -> float | None:
        """Fold one exposure reading into the estimate. Degenerate input is skipped."""
        raw = self.raw_lux(exposure_s, gain)
        if raw is None:
            log.debug(f"Skipping light update (t={exposure_s}, gain={gain})")
            return self.lux
        if self.lux is None:
            self.lux = raw
        else:
            self.lux = lerp(self.lux, raw, self._cfg.smoothing)
        return self.lux

    @property
    def bright_enough(self) -> bool:
        if self.lux is None:
            return not self._cfg.required
        return self.lux >= self._cfg.min_lux
