from dataclasses import replace

import pytest

from refraction.config import Config
from refraction.session.events import SessionListener
from refraction.session.orchestrator import TestOrchestrator
from refraction.tracking.frames import Direction, ExposureSample, MotionSample
from refraction.tracking.synthetic import exposure_for_lux, gravity_for_tilt, make_frame

FRAME_DT = 1.0 / 30.0

GESTURE_POSE = {
    Direction.UP: {"pitch_deg": 30.0},
    Direction.DOWN: {"pitch_deg": -30.0},
    Direction.RIGHT: {"delta_z": 0.04},
    Direction.LEFT: {"delta_z": -0.04},
}
OPPOSITE = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}


class RecordingListener(SessionListener):
    """Keeps every event as (name, args) in arrival order."""

    def __init__(self):
        self.events = []

    def _add(self, name, *args):
        self.events.append((name, args))

    def on_phase_changed(self, phase):
        self._add("phase", phase)

    def on_hint(self, kind, text):
        self._add("hint", kind, text)

    def on_prompt(self, text):
        self._add("prompt", text)

    def on_trial_started(self, direction, level_index):
        self._add("trial_started", direction, level_index)

    def on_trial_resolved(self, direction, correct):
        self._add("trial_resolved", direction, correct)

    def on_level_changed(self, level_index, level):
        self._add("level", level_index, level)

    def on_countdown(self, seconds_left):
        self._add("countdown", seconds_left)

    def on_session_complete(self, right, left):
        self._add("complete", right, left)

    def of(self, name):
        return [args for n, args in self.events if n == name]

    def phases(self):
        return [args[0] for args in self.of("phase")]

    def prompts(self):
        return [args[0] for args in self.of("prompt")]

    def hints(self):
        return [args[0] for args in self.of("hint")]


class ScriptedDeck:
    """Deals a fixed list of directions, then repeats the last one."""

    def __init__(self, directions):
        self._directions = list(directions)
        self._i = 0

    def reset(self):
        self._i = 0

    def draw(self):
        direction = self._directions[min(self._i, len(self._directions) - 1)]
        self._i += 1
        return direction


def neutral(**overrides):
    """Pose function: steady subject, optional fixed overrides."""
    def pose(orchestrator, t):
        return dict(overrides)
    return pose


def responder(mode="correct", **base):
    """Pose function for a subject who answers whenever a window is open."""
    def pose(orchestrator, t):
        params = dict(base)
        if orchestrator.window.is_open and orchestrator.current_direction is not None:
            direction = orchestrator.current_direction
            if mode == "wrong":
                direction = OPPOSITE[direction]
            if mode != "none":
                params.update(GESTURE_POSE[direction])
        return params
    return pose


def feed(orchestrator, t, lux=300.0, tilt_deg=0.0, **params):
    """Send one synthetic frame with exposure and motion samples."""
    orchestrator.handle_frame(
        make_frame(t, **params),
        ExposureSample(*exposure_for_lux(lux)),
        MotionSample(gravity_for_tilt(tilt_deg)),
    )


def drive(orchestrator, start, end, pose_fn, lux=300.0, tilt_deg=0.0, stop=None):
    """Feed frames at 30 Hz over [start, end). Returns the last timestamp sent."""
    last = None
    n = 0
    while True:
        t = start + n * FRAME_DT
        if t >= end:
            break
        n += 1
        feed(orchestrator, t, lux=lux, tilt_deg=tilt_deg, **pose_fn(orchestrator, t))
        last = t
        if stop is not None and stop(orchestrator):
            break
    return last


@pytest.fixture
def recorder():
    return RecordingListener()


@pytest.fixture
def fast_config():
    """Defaults with short waits, so whole sessions run in a few hundred frames."""
    config = Config()
    config.timing = replace(config.timing, practice_intro_s=2.0, adaptation_s=2)
    config.staircase = replace(config.staircase, seed=7)
    return config


@pytest.fixture
def make_orchestrator(recorder, fast_config):
    def factory(config=None, **kwargs):
        return TestOrchestrator(config or fast_config, recorder, **kwargs)
    return factory
