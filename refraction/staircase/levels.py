from dataclasses import dataclass

from refraction.config import StaircaseConfig


@dataclass(frozen=True)
class StaircaseLevel:
    """One rung of the optotype ladder."""

    log_mar: float
    acuity_score: float    # five-point score, grows with difficulty
    stimulus_size: float   # optotype side, display points


def build_levels(config: StaircaseConfig | None = None) -> list[StaircaseLevel]:
    """Build the fixed ladder, easiest first."""
    cfg = config if config else StaircaseConfig()
    if not cfg.base_sizes_px:
        raise ValueError("staircase ladder needs at least one size")
    levels = []
    for i, px in enumerate(cfg.base_sizes_px):
        log_mar = round(cfg.log_mar_start - i * cfg.log_mar_step, 2)
        levels.append(StaircaseLevel(
            log_mar=log_mar,
            acuity_score=round(5.0 - log_mar, 2),
            stimulus_size=px * cfg.size_factor / cfg.screen_scale,
        ))
    return levels
