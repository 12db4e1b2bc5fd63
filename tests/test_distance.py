import pytest

from refraction.config import DistanceConfig
from refraction.gating.distance import DistanceGate, DistanceZone
from refraction.gating.hints import HintKind, HintThrottle


def make_gate(**kwargs):
    params = dict(near_mm=1192.0, far_mm=1205.0, hysteresis_mm=10.0, min_dwell_s=0.6,
                  min_samples=1, hint_cooldown_s=3.0)
    params.update(kwargs)
    return DistanceGate(**params)


def test_first_sample_has_no_hysteresis():
    assert make_gate().update(1206.0, 0.0) is DistanceZone.FAR
    assert make_gate().update(1191.0, 0.0) is DistanceZone.NEAR
    assert make_gate().update(1200.0, 0.0) is DistanceZone.OK


def test_ok_to_far_needs_hysteresis():
    gate = make_gate()
    gate.update(1200.0, 0.0)
    assert gate.update(1210.0, 0.1) is DistanceZone.OK
    assert gate.update(1215.0, 0.2) is DistanceZone.OK
    assert gate.update(1215.5, 0.3) is DistanceZone.FAR


def test_far_returns_below_far_threshold():
    gate = make_gate()
    gate.update(1300.0, 0.0)
    assert gate.update(1205.0, 0.1) is DistanceZone.FAR
    assert gate.update(1204.9, 0.2) is DistanceZone.OK


def test_near_is_symmetric():
    gate = make_gate()
    gate.update(1200.0, 0.0)
    assert gate.update(1182.0, 0.1) is DistanceZone.OK
    assert gate.update(1181.0, 0.2) is DistanceZone.NEAR
    assert gate.update(1192.0, 0.3) is DistanceZone.NEAR
    assert gate.update(1193.0, 0.4) is DistanceZone.OK


def test_oscillation_inside_band_does_not_toggle():
    gate = make_gate()
    gate.update(1200.0, 0.0)
    zones = set()
    for i in range(50):
        d = 1205.0 if i % 2 else 1215.0
        zones.add(gate.update(d, 0.1 * (i + 1)))
    assert zones == {DistanceZone.OK}

    gate.update(1230.0, 6.0)
    zones = set()
    for i in range(50):
        d = 1205.0 if i % 2 else 1215.0
        zones.add(gate.update(d, 6.0 + 0.1 * (i + 1)))
    assert zones == {DistanceZone.FAR}


def test_lock_after_dwell():
    gate = make_gate()
    t = 0.0
    while t < 0.55:
        gate.update(1200.0, t)
        assert not gate.locked
        t += 0.1
    gate.update(1200.0, 0.61)
    assert gate.locked
    assert gate.dwell_s == pytest.approx(0.61)


def test_leaving_ok_resets_dwell():
    gate = make_gate()
    gate.update(1200.0, 0.0)
    gate.update(1200.0, 0.5)
    gate.update(1300.0, 0.55)
    assert gate.dwell_s == 0.0
    gate.update(1200.0, 0.6)
    gate.update(1200.0, 1.0)
    assert not gate.locked


def test_gap_does_not_advance_dwell():
    gate = make_gate()
    gate.update(1200.0, 0.0)
    gate.update(1200.0, 0.3)
    gate.mark_gap()
    gate.update(1200.0, 5.0)
    assert gate.dwell_s == pytest.approx(0.3)
    assert not gate.locked
    gate.update(1200.0, 5.4)
    assert gate.locked


def test_min_samples():
    gate = make_gate(min_dwell_s=0.3, min_samples=6)
    gate.update(1200.0, 0.0)
    gate.update(1200.0, 0.5)
    assert gate.dwell_s >= 0.3
    assert not gate.locked
    for i in range(4):
        gate.update(1200.0, 0.6 + 0.1 * i)
    assert gate.locked


def test_interrupt_keeps_zone():
    gate = make_gate()
    gate.update(1200.0, 0.0)
    gate.update(1200.0, 1.0)
    assert gate.locked
    gate.interrupt()
    assert gate.zone is DistanceZone.OK
    assert not gate.locked


def test_hints_only_outside_ok_and_throttled():
    gate = make_gate()
    gate.update(1200.0, 0.0)
    assert gate.hint(0.0) is None

    gate.update(1400.0, 1.0)
    assert gate.hint(1.0) == (HintKind.DISTANCE, DistanceZone.FAR)
    assert gate.hint(2.0) is None
    assert gate.hint(3.9) is None
    assert gate.hint(4.0) == (HintKind.DISTANCE, DistanceZone.FAR)

    gate.update(1000.0, 5.0)
    assert gate.hint(5.0) is None
    assert gate.hint(7.0) == (HintKind.DISTANCE, DistanceZone.NEAR)


def test_invalid_thresholds_rejected():
    with pytest.raises(ValueError):
        make_gate(near_mm=1205.0, far_mm=1192.0)
    with pytest.raises(ValueError):
        HintThrottle(0.0)


def test_from_config():
    gate = DistanceGate.from_config(DistanceConfig(near_mm=300.0, far_mm=400.0))
    assert gate.update(350.0, 0.0) is DistanceZone.OK
