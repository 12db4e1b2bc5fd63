from itertools import permutations

import pytest

from refraction.config import GestureConfig
from refraction.tracking.frames import Direction, PoseSample
from refraction.tracking.gesture import GestureThresholds, GestureWindow, classify

THRESHOLDS = GestureThresholds(up_deg=20.0, down_deg=-20.0, right_dz=0.025, left_dz=-0.025)


def sample(pitch=0.0, dz=0.0, t=0.0):
    return PoseSample(timestamp=t, yaw_deg=0.0, pitch_deg=pitch, roll_deg=0.0,
                      delta_z=dz, distance_mm=1200.0, eye_height_m=0.0, ipd_mm=63.0)


@pytest.mark.parametrize("pitch, dz, expected", [
    (0.0, 0.0, set()),
    (20.0, 0.0, {Direction.UP}),
    (19.9, 0.0, set()),
    (-20.0, 0.0, {Direction.DOWN}),
    (0.0, 0.025, {Direction.RIGHT}),
    (0.0, -0.03, {Direction.LEFT}),
    (25.0, 0.03, {Direction.UP, Direction.RIGHT}),
])
def test_classify(pitch, dz, expected):
    assert classify(sample(pitch, dz), THRESHOLDS) == expected


def test_thresholds_from_config():
    cfg = GestureConfig(practice_up_deg=15.0, test_up_deg=25.0, test_down_deg=-18.0)
    practice = GestureThresholds.practice(cfg)
    formal = GestureThresholds.formal(cfg)
    assert practice.up_deg == 15.0
    assert formal.up_deg == 25.0
    assert formal.down_deg == -18.0
    assert formal.right_dz == cfg.right_dz_m


def test_hits_are_cumulative_in_any_order():
    samples = [sample(pitch=30.0), sample(pitch=-30.0), sample(dz=0.04), sample(dz=-0.04),
               sample()]
    for order in permutations(samples):
        window = GestureWindow()
        window.open(deadline=3.0)
        for s in order:
            window.update(s, THRESHOLDS)
        assert window.hit_up and window.hit_down and window.hit_left and window.hit_right


def test_neutral_sample_does_not_clear_hit():
    window = GestureWindow()
    window.open(deadline=3.0)
    window.update(sample(pitch=30.0), THRESHOLDS)
    window.update(sample(), THRESHOLDS)
    assert window.is_hit(Direction.UP)
    assert window.any_hit


def test_closed_window_ignores_samples():
    window = GestureWindow()
    assert not window.update(sample(pitch=30.0), THRESHOLDS)
    assert not window.any_hit

    window.open(deadline=3.0)
    window.close()
    window.update(sample(dz=0.04), THRESHOLDS)
    assert not window.hit_right


def test_open_resets_flags():
    window = GestureWindow()
    window.open(deadline=3.0)
    window.update(sample(pitch=-30.0), THRESHOLDS)
    window.open(deadline=6.0)
    assert not window.hit_down
    assert window.deadline == 6.0


def test_up_without_down_in_any_order():
    samples = [sample(pitch=5.0), sample(pitch=22.0), sample(pitch=-19.0), sample(pitch=40.0)]
    for order in permutations(samples):
        window = GestureWindow()
        window.open(deadline=3.0)
        for s in order:
            window.update(s, THRESHOLDS)
        assert window.hit_up
        assert not window.hit_down
