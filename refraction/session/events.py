"""Observer boundary between the engine and the presentation layer."""

import logging

log = logging.getLogger("refraction")


class SessionListener:
    """Override the callbacks you care about. All calls are fire-and-forget."""

    def on_phase_changed(self, phase):
        pass

    def on_hint(self, kind, text: str):
        pass

    def on_prompt(self, text: str):
        pass

    def on_trial_started(self, direction, level_index: int):
        pass

    def on_trial_resolved(self, direction, correct: bool):
        pass

    def on_level_changed(self, level_index: int, level):
        pass

    def on_countdown(self, seconds_left: int):
        pass

    def on_session_complete(self, right, left):
        pass


class EventBus(SessionListener):
    """Fans events out to every subscriber. A failing subscriber is logged
    and skipped; the rest still receive the event."""

    def __init__(self):
        self._listeners = []

    def subscribe(self, listener: SessionListener):
        self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, name: str, *args):
        for listener in list(self._listeners):
            try:
                getattr(listener, name)(*args)
            except Exception as e:
                log.error(f"Listener {type(listener).__name__}.{name} failed: {e}", exc_info=True)

    def on_phase_changed(self, phase):
        self._emit("on_phase_changed", phase)

    def on_hint(self, kind, text):
        self._emit("on_hint", kind, text)

    def on_prompt(self, text):
        self._emit("on_prompt", text)

    def on_trial_started(self, direction, level_index):
        self._emit("on_trial_started", direction, level_index)

    def on_trial_resolved(self, direction, correct):
        self._emit("on_trial_resolved", direction, correct)

    def on_level_changed(self, level_index, level):
        self._emit("on_level_changed", level_index, level)

    def on_countdown(self, seconds_left):
        self._emit("on_countdown", seconds_left)

    def on_session_complete(self, right, left):
        self._emit("on_session_complete", right, left)
