import datetime

import pytest

from services.scheduler import ManualScheduler

START = datetime.datetime(2024, 9, 2, 8, 0)


def test_call_later_runs_only_when_due():
    scheduler = ManualScheduler(start=START)
    calls = []
    scheduler.call_later(2, calls.append, 'a')

    scheduler.advance(1.9)
    assert calls == []
    scheduler.advance(0.1)
    assert calls == ['a']
    assert scheduler.now() == START + datetime.timedelta(seconds=2)


def test_callbacks_run_in_due_order():
    scheduler = ManualScheduler(start=START)
    calls = []
    scheduler.call_later(3, calls.append, 'late')
    scheduler.call_later(1, calls.append, 'early')
    scheduler.call_later(1, calls.append, 'early-second')

    scheduler.advance(5)
    assert calls == ['early', 'early-second', 'late']


def test_callback_sees_its_own_due_time():
    scheduler = ManualScheduler(start=START)
    seen = []
    scheduler.call_later(0.5, lambda: seen.append(scheduler.now()))
    scheduler.advance(10)
    assert seen == [START + datetime.timedelta(seconds=0.5)]


def test_cancelled_task_never_runs():
    scheduler = ManualScheduler(start=START)
    calls = []
    task = scheduler.call_later(1, calls.append, 'x')
    task.cancel()
    scheduler.advance(2)
    assert calls == []
    assert scheduler.pending == []


def test_call_every_repeats_until_cancelled():
    scheduler = ManualScheduler(start=START)
    ticks = []
    task = scheduler.call_every(5, lambda: ticks.append(scheduler.now()))

    scheduler.advance(16)
    assert len(ticks) == 3
    task.cancel()
    scheduler.advance(20)
    assert len(ticks) == 3


def test_failing_callback_does_not_stop_others():
    scheduler = ManualScheduler(start=START)
    calls = []

    def boom():
        raise RuntimeError('boom')

    scheduler.call_later(1, boom)
    scheduler.call_later(2, calls.append, 'after')
    scheduler.advance(3)
    assert calls == ['after']


def test_set_time_cannot_go_backwards():
    scheduler = ManualScheduler(start=START)
    with pytest.raises(ValueError):
        scheduler.set_time(START - datetime.timedelta(minutes=1))


def test_shutdown_drops_pending_tasks():
    scheduler = ManualScheduler(start=START)
    calls = []
    scheduler.call_later(1, calls.append, 'x')
    scheduler.shutdown()
    scheduler.advance(5)
    assert calls == []
