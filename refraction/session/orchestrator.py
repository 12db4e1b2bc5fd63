"""Test orchestrator: drives one visual-acuity session from frames and ticks.

State machine:
    PRACTICE ─(4 trials resolved)─> DISTANCE_LOCK ─(lock+tilt+eye+light)─> BLUE_RIGHT
    BLUE_RIGHT ─> BLUE_LEFT ─> DISTANCE_LOCK ─> WHITE_RIGHT ─> WHITE_LEFT ─> DONE

Every trial phase runs an adaptation countdown before its staircase round.
All mutation happens inside handle_frame / handle_tracking_lost / tick on
the caller's context; timers are advanced from those same calls, so frames
and timers never interleave.
"""

import logging
import random

from refraction.config import Config
from refraction.gating.distance import DistanceGate, DistanceZone
from refraction.gating.hints import HintKind, HintThrottle
from refraction.gating.light import LightEstimator
from refraction.gating.posture import TiltMonitor, eye_height_ok, head_pose_ok
from refraction.session import prompts
from refraction.session.events import EventBus, SessionListener
from refraction.session.phases import (
    NEXT_AFTER_TRIAL, RELOCK_TARGET, Eye, EyeResult, TestPhase,
)
from refraction.session.timers import TimerQueue
from refraction.staircase.controller import StaircaseController, StepAction
from refraction.staircase.deck import DirectionDeck
from refraction.staircase.levels import build_levels
from refraction.tracking.frames import Direction, ExposureSample, FaceFrame, MotionSample
from refraction.tracking.gesture import GestureThresholds, GestureWindow
from refraction.tracking.pose import compute_pose

log = logging.getLogger("refraction")

PRACTICE_SEQUENCE = (Direction.LEFT, Direction.RIGHT, Direction.UP, Direction.DOWN)


class TrackingUnavailableError(RuntimeError):
    """Face tracking is not supported on this device; the session cannot start."""


class TestOrchestrator:
    """Owns all session state; presentation layers subscribe to events."""

    __test__ = False  # not a pytest class

    def __init__(self, config: Config | None = None,
                 listener: SessionListener | None = None,
                 rng: random.Random | None = None,
                 deck: DirectionDeck | None = None):
        self._cfg = config if config else Config()
        cfg = self._cfg

        self.events = EventBus()
        if listener is not None:
            self.events.subscribe(listener)

        self._rng = rng if rng else random.Random(cfg.staircase.seed)
        self._deck = deck if deck else DirectionDeck(self._rng)
        self._levels = build_levels(cfg.staircase)
        self._staircase = StaircaseController(
            self._levels, cfg.distance.target_mm, cfg.distance.promotion_tolerance_mm)

        self._gate = DistanceGate.from_config(cfg.distance)
        self._light = LightEstimator(cfg.light)
        self._tilt = TiltMonitor(cfg.posture.tilt_limit_deg)
        self._tilt_hints = HintThrottle(cfg.posture.tilt_hint_cooldown_s)
        self._eye_hints = HintThrottle(cfg.posture.eye_hint_cooldown_s)
        self._light_hints = HintThrottle(cfg.light.hint_cooldown_s)

        self._window = GestureWindow()
        self._practice_thresholds = GestureThresholds.practice(cfg.gesture)
        self._formal_thresholds = GestureThresholds.formal(cfg.gesture)

        self._timers = TimerQueue()
        self._started = False
        self._init_state()

    def _init_state(self):
        self.phase = None
        self.right = EyeResult()
        self.left = EyeResult()
        self._next_after_distance = TestPhase.BLUE_RIGHT
        self._last_ts = None
        self._last_frame_ts = None
        self._pose = None
        self._distance_mm = None
        self._direction = None
        self._practice_index = 0
        self._practice_intro = False
        self._countdown = 0
        self._listen_timer = None
        self._step_timer = None
        self._countdown_timer = None

    # --- Public API ---

    @property
    def staircase(self) -> StaircaseController:
        return self._staircase

    @property
    def levels(self):
        return self._levels

    @property
    def current_direction(self) -> Direction | None:
        return self._direction

    @property
    def window(self) -> GestureWindow:
        return self._window

    @property
    def outcome(self):
        """(right, left) EyeResults once the session is done, else None."""
        if self.phase is not TestPhase.DONE:
            return None
        return self.right, self.left

    def start(self, now: float, tracking_supported: bool = True, at_distance: bool = False):
        """Begin the session at practice (or straight at the distance lock)."""
        if not tracking_supported:
            log.error("Face tracking unsupported on this device, session not started")
            raise TrackingUnavailableError("face tracking is not supported on this device")
        self._timers = TimerQueue(now)
        self._started = True
        log.info(f"Session started at {now:.3f} ({'distance lock' if at_distance else 'practice'})")
        self._enter(TestPhase.DISTANCE_LOCK if at_distance else TestPhase.PRACTICE)

    def restart(self, now: float, at_distance: bool = False):
        """Cancel every pending timer and rerun the session from scratch."""
        log.info("Restarting session")
        self._timers.cancel_all()
        for component in (self._gate, self._light, self._tilt, self._window,
                          self._staircase, self._deck, self._tilt_hints,
                          self._eye_hints, self._light_hints):
            component.reset()
        self._init_state()
        self.start(now, at_distance=at_distance)

    def handle_frame(self, frame: FaceFrame, exposure: ExposureSample | None = None,
                     motion: MotionSample | None = None):
        """Process one face-tracking tick."""
        if not self._started or self.phase is TestPhase.DONE:
            return
        if not self._advance_clock(frame.timestamp, strict=True):
            return
        if self.phase is TestPhase.DONE:
            return

        now = frame.timestamp
        if exposure is not None:
            self._light.update(exposure.duration_s, exposure.gain)
        if motion is not None:
            self._tilt.update(motion)

        pose = compute_pose(frame)
        self._pose = pose
        self._distance_mm = pose.distance_mm
        self._gate.update(pose.distance_mm, now)

        if self.phase is TestPhase.DISTANCE_LOCK:
            self._update_lock(now)
        elif self._window.is_open:
            thresholds = (self._practice_thresholds if self.phase is TestPhase.PRACTICE
                          else self._formal_thresholds)
            self._window.update(pose, thresholds)
            if self._window.is_hit(self._direction):
                self._resolve(correct=True, any_hit=True)

    def handle_tracking_lost(self, timestamp: float):
        """No face this tick: a gap for the distance gate, timers still run."""
        if not self._started or self.phase is TestPhase.DONE:
            return
        if not self._advance_clock(timestamp, strict=True):
            return
        self._distance_mm = None
        self._gate.mark_gap()

    def tick(self, now: float):
        """Advance timers without a frame."""
        if not self._started:
            return
        self._advance_clock(now, strict=False)

    def status(self) -> dict:
        """Snapshot for HUDs and the debug server."""
        pose = self._pose
        return {
            "phase": self.phase.label if self.phase else None,
            "distance_mm": self._distance_mm,
            "distance_zone": self._gate.zone.value if self._gate.zone else None,
            "distance_locked": self._gate.locked,
            "lux": self._light.lux,
            "tilt_deg": self._tilt.tilt_deg,
            "eye_height_m": pose.eye_height_m if pose else None,
            "head_pose_ok": head_pose_ok(pose, self._cfg.posture) if pose else None,
            "pitch_deg": pose.pitch_deg if pose else None,
            "head_pitch_deg": pose.head_pitch_deg if pose else None,
            "yaw_deg": pose.yaw_deg if pose else None,
            "roll_deg": pose.roll_deg if pose else None,
            "delta_z": pose.delta_z if pose else None,
            "direction": self._direction.value if self._direction else None,
            "listening": self._window.is_open,
            "practice_intro": self._practice_intro,
            "countdown": self._countdown,
            "level_index": self._staircase.current_level_index,
            "trials_this_level": self._staircase.trials_this_level,
            "correct_this_level": self._staircase.correct_this_level,
            "right": self.right.as_dict(),
            "left": self.left.as_dict(),
        }

    # --- Clock ---

    def _advance_clock(self, ts: float, strict: bool) -> bool:
        # Ticks may share a timestamp with a frame; frames may not repeat one.
        if self._last_ts is not None and ts < self._last_ts:
            log.debug(f"Discarding stale sample at {ts:.3f} (last {self._last_ts:.3f})")
            return False
        if strict and ts == self._last_frame_ts:
            log.debug(f"Discarding duplicate sample at {ts:.3f}")
            return False
        self._last_ts = ts
        if strict:
            self._last_frame_ts = ts
        self._timers.run_due(ts)
        return True

    def _schedule(self, delay_s: float, callback, name: str):
        return self._timers.schedule(delay_s, callback, name)

    @staticmethod
    def _cancel(handle):
        if handle is not None:
            handle.cancel()

    # --- Transitions ---

    def _enter(self, phase: TestPhase):
        log.info(f"Session: {self.phase.label if self.phase else '-'} -> {phase.label}")
        self.phase = phase
        self._window.reset()
        self._cancel(self._listen_timer)
        self._direction = None
        self.events.on_phase_changed(phase)

        if phase is TestPhase.PRACTICE:
            self._begin_practice()
        elif phase is TestPhase.DISTANCE_LOCK:
            self._gate.interrupt()
            relock = self._next_after_distance is not TestPhase.BLUE_RIGHT
            self.events.on_prompt(prompts.RELOCK_INTRO if relock else prompts.DISTANCE_INTRO)
        elif phase.is_trial:
            self._begin_adaptation()
        elif phase is TestPhase.DONE:
            self.events.on_prompt(prompts.SESSION_DONE)
            log.info(f"Session complete: right={self.right.as_dict()} left={self.left.as_dict()}")
            self.events.on_session_complete(self.right, self.left)

    def _hint(self, kind: HintKind, text: str):
        log.debug(f"Hint [{kind.value}]: {text}")
        self.events.on_hint(kind, text)

    # --- DISTANCE_LOCK ---

    def _update_lock(self, now: float):
        gate = self._gate
        pose = self._pose
        posture = self._cfg.posture

        request = gate.hint(now)
        if request is not None:
            self._hint(HintKind.DISTANCE, prompts.distance_hint(request[1]))

        eye_ok = eye_height_ok(pose, posture.eye_height_tolerance_m)
        tilt_ok = self._tilt.ok
        light_ok = self._light.bright_enough

        if gate.zone is DistanceZone.OK:
            if not eye_ok and self._eye_hints.try_fire(now):
                self._hint(HintKind.EYE_HEIGHT, prompts.eye_height_hint(pose.eye_height_m))
            if not tilt_ok and self._tilt_hints.try_fire(now):
                self._hint(HintKind.TILT, prompts.TILT_HINT)
        if not light_ok and self._light_hints.try_fire(now):
            self._hint(HintKind.LIGHT, prompts.LIGHT_HINT)

        if not (eye_ok and tilt_ok and light_ok):
            gate.interrupt()
            return
        if gate.locked:
            self.events.on_prompt(prompts.DISTANCE_OK)
            self._enter(self._next_after_distance)

    # --- PRACTICE ---

    def _begin_practice(self):
        self._practice_intro = True
        self._practice_index = 0
        self.events.on_prompt(prompts.PRACTICE_INTRO)
        self._step_timer = self._schedule(
            self._cfg.timing.practice_intro_s, self._prepare_practice, "practice-intro")

    def _prepare_practice(self):
        self._practice_intro = False
        self._practice_index = 0
        self._start_practice_trial()

    def _start_practice_trial(self):
        self._direction = PRACTICE_SEQUENCE[self._practice_index]
        self.events.on_trial_started(self._direction, None)
        self._step_timer = self._schedule(
            self._cfg.timing.practice_trial_delay_s, self._open_practice_window, "practice-trial")

    def _open_practice_window(self):
        if self.phase is not TestPhase.PRACTICE:
            return
        self.events.on_prompt(prompts.DIRECTION_PROMPTS[self._direction])
        self._open_window()

    def _next_practice(self):
        self._practice_index += 1
        if self._practice_index >= len(PRACTICE_SEQUENCE):
            self.events.on_prompt(prompts.PRACTICE_DONE)
            self._next_after_distance = TestPhase.BLUE_RIGHT
            self._enter(TestPhase.DISTANCE_LOCK)
        else:
            self._start_practice_trial()

    # --- Listening window (practice and formal) ---

    def _open_window(self):
        listen = self._cfg.timing.listen_s
        self._window.open(deadline=self._timers.now + listen)
        self._listen_timer = self._schedule(listen, self._on_listen_timeout, "listen")

    def _on_listen_timeout(self):
        if not self._window.is_open:
            return
        self._resolve(correct=self._window.is_hit(self._direction), any_hit=self._window.any_hit)

    def _resolve(self, correct: bool, any_hit: bool):
        """Close the window once; whichever of frame or timer gets here first wins."""
        self._window.close()
        self._cancel(self._listen_timer)
        timing = self._cfg.timing

        if not any_hit:
            log.info(f"No response for {self._direction.value}, trial discarded")
            self.events.on_prompt(prompts.NO_RESPONSE)
            delay = timing.feedback_none_s
        else:
            self.events.on_trial_resolved(self._direction, correct)
            self.events.on_prompt(prompts.CORRECT if correct else prompts.WRONG)
            delay = timing.feedback_hit_s

        self._step_timer = self._schedule(
            delay, lambda: self._after_feedback(correct, any_hit), "feedback")

    def _after_feedback(self, correct: bool, any_hit: bool):
        if self.phase is TestPhase.PRACTICE:
            self._next_practice()
        elif self.phase is not None and self.phase.is_trial:
            self._score_trial(correct, any_hit)

    # --- Trial phases ---

    def _begin_adaptation(self):
        seconds = int(self._cfg.timing.adaptation_s)
        self.events.on_prompt(prompts.adaptation_intro(self.phase.eye, self.phase.adaptation, seconds))
        self._countdown = seconds
        self.events.on_countdown(self._countdown)
        if seconds <= 0:
            self._start_staircase()
            return
        self._countdown_timer = self._schedule(1.0, self._countdown_tick, "adaptation")

    def _countdown_tick(self):
        self._countdown -= 1
        self.events.on_countdown(self._countdown)
        if self._countdown > 0:
            self._countdown_timer = self._schedule(1.0, self._countdown_tick, "adaptation")
        else:
            self._start_staircase()

    def _start_staircase(self):
        self._staircase.reset()
        log.info(f"Staircase started for {self.phase.label}")
        self.events.on_level_changed(0, self._staircase.current_level)
        self._start_trial()

    def _start_trial(self):
        if self.phase is None or not self.phase.is_trial:
            return
        self._direction = self._deck.draw()
        self.events.on_trial_started(self._direction, self._staircase.current_level_index)
        self._open_window()

    def _score_trial(self, correct: bool, any_hit: bool):
        if not any_hit:
            # Not scored; same level, same counters
            self._start_trial()
            return

        result = self._staircase.record(correct, self._distance_mm)
        if result.action is StepAction.CONTINUE:
            self._start_trial()
        elif result.action is StepAction.PROMOTED:
            self.events.on_level_changed(result.level_index, self._staircase.current_level)
            self._start_trial()
        elif result.action is StepAction.RETRY_LEVEL:
            self._hint(result.hint or HintKind.DISTANCE, prompts.PROMOTION_DISTANCE_HINT)
            self._step_timer = self._schedule(
                self._cfg.timing.promotion_retry_s, self._start_trial, "promotion-retry")
        else:
            self._finish_round(result.score)

    def _finish_round(self, score: float):
        phase = self.phase
        result = self.right if phase.eye is Eye.RIGHT else self.left
        result.record(phase.adaptation, score)
        log.info(f"{phase.label}: threshold {score}")

        nxt = NEXT_AFTER_TRIAL[phase]
        if nxt is None:
            self._next_after_distance = RELOCK_TARGET[phase]
            self._enter(TestPhase.DISTANCE_LOCK)
        else:
            self._enter(nxt)
