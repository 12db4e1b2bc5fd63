from refraction.session.timers import TimerQueue


def test_fires_in_deadline_order():
    queue = TimerQueue(0.0)
    fired = []
    queue.schedule(2.0, lambda: fired.append("b"))
    queue.schedule(1.0, lambda: fired.append("a"))
    queue.schedule(2.0, lambda: fired.append("c"))
    assert queue.run_due(1.5) == 1
    assert fired == ["a"]
    queue.run_due(2.0)
    assert fired == ["a", "b", "c"]
    assert len(queue) == 0


def test_cancelled_timer_never_fires():
    queue = TimerQueue(0.0)
    fired = []
    handle = queue.schedule(1.0, lambda: fired.append("x"))
    handle.cancel()
    assert not handle.pending
    queue.run_due(5.0)
    assert fired == []
    assert not handle.fired


def test_chained_timers_use_their_own_deadline():
    queue = TimerQueue(10.0)
    seen = []

    def first():
        seen.append(queue.now)
        queue.schedule(1.0, lambda: seen.append(queue.now))

    queue.schedule(1.0, first)
    queue.run_due(20.0)
    assert seen == [11.0, 12.0]
    assert queue.now == 20.0


def test_cancel_all():
    queue = TimerQueue(0.0)
    fired = []
    handles = [queue.schedule(i, lambda: fired.append(1)) for i in (1.0, 2.0)]
    queue.cancel_all()
    queue.run_due(10.0)
    assert fired == []
    assert all(not h.pending for h in handles)


def test_clock_never_moves_back():
    queue = TimerQueue(5.0)
    queue.run_due(3.0)
    assert queue.now == 5.0
