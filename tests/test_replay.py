import pytest

from refraction.debug.web_server import DebugState
from refraction.main import LoggingListener, load_script, run_acuity, run_pd


def write(tmp_path, text):
    path = tmp_path / "session.yaml"
    path.write_text(text)
    return str(path)


def test_segments_get_defaults(tmp_path):
    script = load_script(write(tmp_path, """
segments:
  - duration: 2.0
    distance_mm: 900
  - tracking: false
"""))
    first, second = script["segments"]
    assert first["distance_mm"] == 900
    assert first["lux"] == 300.0
    assert second["duration"] == 1.0
    assert second["tracking"] is False


def test_replay_runs_session_to_completion(tmp_path, fast_config):
    script = load_script(write(tmp_path, """
start_at: distance
segments:
  - duration: 1.0
    distance_mm: 1500
  - duration: 1.0
    tracking: false
  - duration: 10.0
    respond: wrong
    until: done
"""))
    debug_state = DebugState()
    outcome = run_acuity(script, fast_config, LoggingListener(debug_state), debug_state)

    right, left = outcome
    assert right.complete and left.complete
    status = debug_state.get_status()
    assert status["status"]["phase"] == "done"
    assert status["events"][-1]["event"] == "complete"
    assert len(status["events"]) <= debug_state.max_events


def test_replay_without_tracking_support(tmp_path, fast_config):
    script = load_script(write(tmp_path, "tracking_supported: false\nsegments: []\n"))
    assert run_acuity(script, fast_config, LoggingListener()) is None


def test_replay_stops_when_segments_run_out(tmp_path, fast_config):
    script = load_script(write(tmp_path, "segments:\n  - duration: 1.0\n"))
    assert run_acuity(script, fast_config, LoggingListener()) is None


def test_pd_replay(tmp_path, fast_config):
    script = load_script(write(tmp_path, """
mode: pd
segments:
  - duration: 0.5
    distance_mm: 500
  - duration: 1.0
    distance_mm: 350
"""))
    assert run_pd(script, fast_config, LoggingListener()) == pytest.approx(63.0)
