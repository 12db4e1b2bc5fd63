#!/usr/bin/env python3
"""Acuity session - scripted replay entry point.

Renders a YAML session script into synthetic face-tracking frames and feeds
them to the test orchestrator (or to PD capture), logging every event.
"""

import argparse
import logging
import signal
import sys
import time
from pathlib import Path

import yaml

from refraction.config import load_config
from refraction.gating.light import LightEstimator
from refraction.pd.capture import PDCapture
from refraction.session.events import SessionListener
from refraction.session.orchestrator import TestOrchestrator, TrackingUnavailableError
from refraction.session.phases import TestPhase
from refraction.tracking.frames import Direction, ExposureSample, MotionSample
from refraction.tracking.pose import compute_pose
from refraction.tracking.synthetic import exposure_for_lux, gravity_for_tilt, make_frame

log = logging.getLogger("refraction")

SEGMENT_DEFAULTS = {
    "duration": 1.0,
    "distance_mm": 1200.0,
    "pitch_deg": 0.0,
    "delta_z": 0.0,
    "eye_height_m": 0.0,
    "lux": 300.0,
    "tilt_deg": 0.0,
    "tracking": True,
    "respond": None,        # correct | wrong | None
    "until": None,          # done: keep going until the session finishes
}

# Head pose that answers each direction
_GESTURE_POSE = {
    Direction.UP: {"pitch_deg": 30.0},
    Direction.DOWN: {"pitch_deg": -30.0},
    Direction.RIGHT: {"delta_z": 0.04},
    Direction.LEFT: {"delta_z": -0.04},
}
_OPPOSITE = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}


class LoggingListener(SessionListener):
    """Logs every engine event and mirrors it to the debug state, if any."""

    def __init__(self, debug_state=None):
        self._debug_state = debug_state

    def _record(self, name, payload):
        log.info(f"[{name}] {payload}")
        if self._debug_state is not None:
            self._debug_state.add_event(name, payload)

    def on_phase_changed(self, phase):
        self._record("phase", phase.label)

    def on_hint(self, kind, text):
        self._record("hint", f"{kind.value}: {text}")

    def on_prompt(self, text):
        self._record("prompt", text)

    def on_trial_resolved(self, direction, correct):
        self._record("trial", f"{direction.value} {'correct' if correct else 'wrong'}")

    def on_level_changed(self, level_index, level):
        self._record("level", f"{level_index} (score {level.acuity_score}, size {level.stimulus_size:.1f})")

    def on_session_complete(self, right, left):
        self._record("complete", {"right": right.as_dict(), "left": left.as_dict()})


def load_script(path: str) -> dict:
    with open(path) as f:
        script = yaml.safe_load(f) or {}
    segments = []
    for raw in script.get("segments", []):
        seg = dict(SEGMENT_DEFAULTS)
        seg.update(raw or {})
        segments.append(seg)
    script["segments"] = segments
    return script


def _respond(seg: dict, orchestrator: TestOrchestrator) -> dict:
    """Pose overrides for a simulated subject answering the current trial."""
    if not seg["respond"] or not orchestrator.window.is_open:
        return {}
    direction = orchestrator.current_direction
    if seg["respond"] == "wrong":
        direction = _OPPOSITE[direction]
    return _GESTURE_POSE[direction]


def run_acuity(script: dict, config, listener, debug_state=None, realtime=False):
    orchestrator = TestOrchestrator(config, listener)
    rate = float(script.get("frame_rate", config.debug.frame_rate))
    dt = 1.0 / rate
    t = 0.0

    try:
        orchestrator.start(t, tracking_supported=script.get("tracking_supported", True),
                           at_distance=script.get("start_at") == "distance")
    except TrackingUnavailableError as e:
        log.error(f"Cannot run session: {e}")
        return None

    for seg in script["segments"]:
        end = t + seg["duration"]
        while t < end or (seg["until"] == "done" and orchestrator.phase is not TestPhase.DONE):
            t += dt
            if not seg["tracking"]:
                orchestrator.handle_tracking_lost(t)
            else:
                params = {k: seg[k] for k in ("distance_mm", "pitch_deg", "delta_z", "eye_height_m")}
                params.update(_respond(seg, orchestrator))
                exposure = ExposureSample(*exposure_for_lux(seg["lux"]))
                motion = MotionSample(gravity_for_tilt(seg["tilt_deg"]))
                orchestrator.handle_frame(make_frame(t, **params), exposure, motion)

            if debug_state is not None:
                debug_state.update_snapshot(orchestrator.status())
            if realtime:
                time.sleep(dt)
            if orchestrator.phase is TestPhase.DONE:
                return orchestrator.outcome
            if seg["until"] == "done" and t - end > 3600:
                log.warning("Session did not finish within an hour of simulated time")
                break
    return orchestrator.outcome


def run_pd(script: dict, config, listener):
    light = LightEstimator(config.light)
    capture = PDCapture(config.pd, min_lux=config.light.min_lux, on_hint=listener.on_hint)
    rate = float(script.get("frame_rate", config.debug.frame_rate))
    dt = 1.0 / rate
    t = 0.0
    for seg in script["segments"]:
        end = t + seg["duration"]
        while t < end:
            t += dt
            if not seg["tracking"]:
                capture.mark_gap()
                continue
            light.update(*exposure_for_lux(seg["lux"]))
            frame = make_frame(t, seg["distance_mm"], seg["pitch_deg"], seg["delta_z"],
                               seg["eye_height_m"])
            pd = capture.update(compute_pose(frame), light.lux)
            if pd is not None:
                return pd
    return None


def main():
    parser = argparse.ArgumentParser(description="Acuity session replay")
    parser.add_argument("--config", default="config.yaml", help="Config file path")
    parser.add_argument("--script", required=True, help="Session script (YAML)")
    parser.add_argument("--debug", action="store_true", help="Enable debug web server")
    parser.add_argument("--realtime", action="store_true", help="Pace frames at the script rate")
    args = parser.parse_args()

    config = load_config(args.config)
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if not Path(args.script).exists():
        log.error(f"Script not found: {args.script}")
        sys.exit(1)
    script = load_script(args.script)

    debug_state = None
    if args.debug:
        from refraction.debug.web_server import DebugState, start_debug_server
        debug_state = DebugState()
        start_debug_server(debug_state, config.debug.web_port)
        log.info(f"Debug server at http://0.0.0.0:{config.debug.web_port}")

    # Handle SIGTERM gracefully
    signal.signal(signal.SIGTERM, lambda *_: sys.exit(0))

    listener = LoggingListener(debug_state)
    if script.get("mode", "acuity") == "pd":
        pd = run_pd(script, config, listener)
        log.info(f"PD result: {f'{pd:.1f} mm' if pd is not None else 'not captured'}")
        sys.exit(0 if pd is not None else 2)

    outcome = run_acuity(script, config, listener, debug_state, args.realtime)
    if outcome is None:
        log.info("Session did not complete")
        sys.exit(2)
    right, left = outcome
    log.info(f"Right eye: {right.as_dict()}  Left eye: {left.as_dict()}")


if __name__ == "__main__":
    main()
