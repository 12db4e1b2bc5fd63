"""Adaptive staircase with a three-trial promotion rule per level.

After each scored trial:

    trials  correct   action
    1       0 or 1    next trial
    2       2         try promotion
    2       0         fail level, round ends
    2       1         next trial (third)
    3       >= 2      try promotion
    3       <= 1      fail level, round ends

Promotion only happens when the viewing distance at that moment is within
tolerance of the target; otherwise the counters reset and the same level is
retried. Trials with no response are never scored.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto

from refraction.gating.hints import HintKind
from refraction.staircase.levels import StaircaseLevel

log = logging.getLogger("refraction")


class StepAction(Enum):
    CONTINUE = auto()      # run another trial at this level
    PROMOTED = auto()      # moved to the next level
    RETRY_LEVEL = auto()   # promotion refused (distance), counters reset
    FINISHED = auto()      # round over, score available


@dataclass(frozen=True)
class StepResult:
    action: StepAction
    level_index: int
    score: float | None = None
    hint: HintKind | None = None


class StaircaseController:
    def __init__(self, levels: list[StaircaseLevel], target_mm: float,
                 tolerance_mm: float):
        if not levels:
            raise ValueError("staircase needs at least one level")
        self._levels = levels
        self._target = target_mm
        self._tolerance = tolerance_mm
        self.reset()

    def reset(self):
        self.current_level_index = 0
        self.trials_this_level = 0
        self.correct_this_level = 0
        self.best_passed_level_index = None
        self.finished = False
        self.score = None

    @property
    def levels(self) -> list[StaircaseLevel]:
        return self._levels

    @property
    def current_level(self) -> StaircaseLevel:
        return self._levels[self.current_level_index]

    def round_score(self) -> float:
        if self.best_passed_level_index is None:
            return self._levels[0].acuity_score
        return self._levels[self.best_passed_level_index].acuity_score

    def distance_ok(self, distance_mm: float | None) -> bool:
        return distance_mm is not None and abs(distance_mm - self._target) <= self._tolerance

    def record(self, correct: bool, distance_mm: float | None = None) -> StepResult:
        """Score one answered trial and decide what happens next."""
        if self.finished:
            raise RuntimeError("staircase round already finished")

        self.trials_this_level += 1
        if correct:
            self.correct_this_level += 1
        trials, hits = self.trials_this_level, self.correct_this_level

        if trials == 1:
            return self._step(StepAction.CONTINUE)
        if trials == 2:
            if hits == 2:
                return self._promote(distance_mm)
            if hits == 0:
                return self._finish()
            return self._step(StepAction.CONTINUE)
        if hits >= 2:
            return self._promote(distance_mm)
        return self._finish()

    def _step(self, action: StepAction, hint: HintKind | None = None) -> StepResult:
        return StepResult(action, self.current_level_index, hint=hint)

    def _reset_counters(self):
        self.trials_this_level = 0
        self.correct_this_level = 0

    def _promote(self, distance_mm: float | None) -> StepResult:
        if not self.distance_ok(distance_mm):
            log.info(f"Promotion from level {self.current_level_index} refused "
                     f"(distance {distance_mm} mm), retrying level")
            self._reset_counters()
            return self._step(StepAction.RETRY_LEVEL, hint=HintKind.DISTANCE)

        self.best_passed_level_index = max(self.best_passed_level_index or 0,
                                           self.current_level_index)
        self._reset_counters()
        if self.current_level_index + 1 >= len(self._levels):
            return self._finish()
        self.current_level_index += 1
        log.debug(f"Promoted to level {self.current_level_index}")
        return self._step(StepAction.PROMOTED)

    def _finish(self) -> StepResult:
        self.finished = True
        self.score = self.round_score()
        log.info(f"Staircase round finished at level {self.current_level_index}, "
                 f"best passed {self.best_passed_level_index}, score {self.score}")
        return StepResult(StepAction.FINISHED, self.current_level_index, score=self.score)
