import math


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation from a to b by factor t (0.0-1.0)."""
    return a + (b - a) * t


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value between min_val and max_val."""
    return max(min_val, min(max_val, value))


def wrap180(angle: float) -> float:
    """Wrap degrees into (-180, 180]."""
    while angle > 180.0:
        angle -= 360.0
    while angle <= -180.0:
        angle += 360.0
    return angle


def fold90(angle: float) -> float:
    """Fold degrees into [-90, 90] by adding/subtracting 180.

    atan2-derived pitch is double-valued for a face looking at the camera;
    folding keeps "up" positive whichever quadrant the sensor reports.
    """
    angle = wrap180(angle)
    if angle < -90.0:
        angle += 180.0
    elif angle > 90.0:
        angle -= 180.0
    return angle


def degrees_atan2(y: float, x: float) -> float:
    return math.degrees(math.atan2(y, x))
