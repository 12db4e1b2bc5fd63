import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

import yaml

log = logging.getLogger("refraction")


@dataclass
class GestureConfig:
    # Practice thresholds are looser to build confidence
    practice_up_deg: float = 20.0
    practice_down_deg: float = -20.0
    # Formal thresholds may be asymmetric
    test_up_deg: float = 20.0
    test_down_deg: float = -20.0
    # Right-eye-minus-left-eye depth, metres
    right_dz_m: float = 0.025
    left_dz_m: float = -0.025


@dataclass
class DistanceConfig:
    near_mm: float = 1192.0
    far_mm: float = 1205.0
    hysteresis_mm: float = 10.0
    min_dwell_s: float = 0.6
    min_samples: int = 1
    hint_cooldown_s: float = 3.0
    target_mm: float = 1200.0
    promotion_tolerance_mm: float = 50.0


@dataclass
class LightConfig:
    calibration_k: float = 12.5
    aperture: float = 2.2
    reflectance: float = 0.18
    smoothing: float = 0.25
    min_lux: float = 90.0
    required: bool = True
    hint_cooldown_s: float = 3.0


@dataclass
class PostureConfig:
    tilt_limit_deg: float = 5.0
    tilt_hint_cooldown_s: float = 3.0
    eye_height_tolerance_m: float = 0.05
    eye_hint_cooldown_s: float = 3.0
    head_yaw_abs: float = 20.0
    head_pitch_abs: float = 24.0
    head_roll_abs: float = 20.0


@dataclass
class StaircaseConfig:
    log_mar_start: float = 0.7
    log_mar_step: float = 0.1
    base_sizes_px: tuple = (500, 400, 315, 250, 200, 160, 125, 100, 80, 65, 50, 40, 32, 25)
    size_factor: float = 1.8
    screen_scale: float = 3.0
    seed: int | None = None


@dataclass
class TimingConfig:
    practice_intro_s: float = 16.0
    practice_trial_delay_s: float = 0.8
    listen_s: float = 3.0
    feedback_hit_s: float = 1.0
    feedback_none_s: float = 3.0
    adaptation_s: int = 20
    promotion_retry_s: float = 1.5


@dataclass
class PDConfig:
    target_mm: float = 350.0
    tolerance_mm: float = 10.0
    hysteresis_mm: float = 2.0
    min_dwell_s: float = 0.3
    min_samples: int = 6
    smoothing_window: int = 12
    yaw_abs: float = 12.0
    pitch_abs: float = 12.0
    # Head counts as level at |roll| <= 12, stops at > 18
    roll_enter_abs: float = 12.0
    roll_exit_abs: float = 18.0
    pose_stable_s: float = 0.3
    dark_warning_s: float = 1.0
    hint_cooldown_s: float = 3.0


@dataclass
class DebugConfig:
    web_port: int = 8080
    frame_rate: float = 30.0


@dataclass
class Config:
    gesture: GestureConfig = field(default_factory=GestureConfig)
    distance: DistanceConfig = field(default_factory=DistanceConfig)
    light: LightConfig = field(default_factory=LightConfig)
    posture: PostureConfig = field(default_factory=PostureConfig)
    staircase: StaircaseConfig = field(default_factory=StaircaseConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    pd: PDConfig = field(default_factory=PDConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)
    log_level: str = "INFO"


def _section(name: str, current, data: dict):
    """Overlay one YAML mapping onto a section dataclass, keeping defaults for missing keys."""
    known = {f.name for f in fields(current)}
    values = {}
    for key, value in data.items():
        if key not in known:
            log.warning(f"Ignoring unknown config key: {name}.{key}")
            continue
        # YAML has no tuples
        if isinstance(getattr(current, key), tuple) and isinstance(value, list):
            value = tuple(value)
        values[key] = value
    return replace(current, **values)


def validate_config(config: Config) -> Config:
    """Reject values the engine cannot run with."""
    d = config.distance
    if d.near_mm >= d.far_mm:
        raise ValueError(f"distance.near_mm ({d.near_mm}) must be below far_mm ({d.far_mm})")
    if d.hysteresis_mm < 0:
        raise ValueError("distance.hysteresis_mm must not be negative")
    for name, value in (
        ("distance.hint_cooldown_s", d.hint_cooldown_s),
        ("light.hint_cooldown_s", config.light.hint_cooldown_s),
        ("posture.tilt_hint_cooldown_s", config.posture.tilt_hint_cooldown_s),
        ("posture.eye_hint_cooldown_s", config.posture.eye_hint_cooldown_s),
        ("pd.hint_cooldown_s", config.pd.hint_cooldown_s),
    ):
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")
    if not 0.0 < config.light.smoothing <= 1.0:
        raise ValueError("light.smoothing must be in (0, 1]")
    if config.timing.listen_s <= 0:
        raise ValueError("timing.listen_s must be positive")
    if config.pd.roll_exit_abs < config.pd.roll_enter_abs:
        raise ValueError("pd.roll_exit_abs must not be below roll_enter_abs")
    return config


def load_config(path: str = "config.yaml") -> Config:
    """Load config from YAML file, falling back to defaults for missing keys."""
    config = Config()
    config_path = Path(path)

    if not config_path.exists():
        log.info(f"No config at {config_path}, using defaults")
        return config

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    for name in ("gesture", "distance", "light", "posture", "staircase", "timing", "pd", "debug"):
        if name in data:
            setattr(config, name, _section(name, getattr(config, name), data[name] or {}))

    if "logging" in data:
        config.log_level = data["logging"].get("level", config.log_level)

    log.info(f"Loaded config from {config_path}")
    return validate_config(config)
