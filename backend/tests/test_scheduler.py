from drawit.game.scheduler import TurnScheduler


class FakeLoop:
    """Captures started tasks so tests can run them by hand."""

    def __init__(self):
        self.tasks = []
        self.slept = []

    def start_task(self, fn, *args):
        self.tasks.append((fn, args))

    def sleep(self, seconds):
        self.slept.append(seconds)

    def run_all(self):
        tasks, self.tasks = self.tasks, []
        for fn, args in tasks:
            fn(*args)


def test_schedule_replaces_previous_timer():
    scheduler = TurnScheduler()
    calls = []
    first = scheduler.schedule('ROOM01', 3, lambda: calls.append('first'), label='a')
    second = scheduler.schedule('ROOM01', 5, lambda: calls.append('second'), label='b')

    assert first.cancelled
    assert scheduler.pending('ROOM01') is second

    assert scheduler.fire('ROOM01')
    assert calls == ['second']
    assert scheduler.pending('ROOM01') is None
    assert not scheduler.fire('ROOM01')


def test_timers_are_per_room():
    scheduler = TurnScheduler()
    scheduler.schedule('AAAAAA', 1, lambda: None)
    scheduler.schedule('BBBBBB', 1, lambda: None)
    scheduler.cancel('AAAAAA')
    assert scheduler.pending('AAAAAA') is None
    assert scheduler.pending('BBBBBB') is not None


def test_cancel_prevents_callback():
    loop = FakeLoop()
    scheduler = TurnScheduler(start_task=loop.start_task, sleep=loop.sleep)
    calls = []
    scheduler.schedule('ROOM01', 3, lambda: calls.append(1))

    assert scheduler.cancel('ROOM01')
    assert not scheduler.cancel('ROOM01')
    loop.run_all()

    assert calls == []
    assert loop.slept == [3]


def test_superseded_background_timer_does_not_fire():
    loop = FakeLoop()
    scheduler = TurnScheduler(start_task=loop.start_task, sleep=loop.sleep)
    calls = []
    scheduler.schedule('ROOM01', 3, lambda: calls.append('old'))
    scheduler.schedule('ROOM01', 6, lambda: calls.append('new'))

    loop.run_all()

    assert calls == ['new']
    assert scheduler.pending('ROOM01') is None


def test_countdown_runs_until_callback_returns_false():
    loop = FakeLoop()
    scheduler = TurnScheduler(start_task=loop.start_task, sleep=loop.sleep)
    remaining = [3]

    def tick():
        remaining[0] -= 1
        return remaining[0] > 0

    scheduler.start_countdown('ROOM01', tick, interval_sec=1.0)
    loop.run_all()

    assert remaining == [0]
    assert loop.slept == [1.0, 1.0, 1.0]
    assert scheduler.pending('ROOM01') is None


def test_fire_runs_one_countdown_tick():
    scheduler = TurnScheduler()
    ticks = []
    handle = scheduler.start_countdown('ROOM01', lambda: ticks.append(1) or True)

    scheduler.fire('ROOM01')
    scheduler.fire('ROOM01')

    assert ticks == [1, 1]
    assert scheduler.pending('ROOM01') is handle


def test_failing_callback_releases_timer():
    loop = FakeLoop()
    scheduler = TurnScheduler(start_task=loop.start_task, sleep=loop.sleep)

    def boom():
        raise RuntimeError('boom')

    scheduler.start_countdown('ROOM01', boom)
    loop.run_all()

    assert scheduler.pending('ROOM01') is None


def test_cancel_all():
    scheduler = TurnScheduler()
    handles = [scheduler.schedule(code, 1, lambda: None) for code in ('A', 'B')]
    scheduler.cancel_all()
    assert all(h.cancelled for h in handles)
    assert scheduler.pending('A') is None
