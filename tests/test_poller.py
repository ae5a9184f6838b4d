import threading
import time

from duel_sync import Poller


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_stop_halts_ticks():
    ticks = []
    poller = Poller(lambda: ticks.append(1), interval=0.01)
    poller.start()
    assert wait_until(lambda: len(ticks) >= 2)

    poller.stop(timeout=2)
    count = len(ticks)
    time.sleep(0.05)

    assert len(ticks) == count
    assert not poller.running


def test_restart_does_not_revive_the_stopped_loop():
    entered = threading.Event()
    release = threading.Event()
    callers = []

    def tick():
        callers.append(threading.current_thread())
        entered.set()
        release.wait(2)

    poller = Poller(tick, interval=0.01)
    poller.start()
    assert entered.wait(2)
    first = poller.thread

    poller.stop(timeout=0)
    poller.start()
    release.set()
    first.join(timeout=2)

    try:
        assert not first.is_alive()
        assert poller.thread is not first
        assert poller.running
        assert callers.count(first) == 1
    finally:
        poller.stop(timeout=2)


def test_failing_tick_keeps_polling():
    calls = []

    def tick():
        calls.append(1)
        raise RuntimeError("store exploded")

    poller = Poller(tick, interval=0.01)
    poller.start()
    try:
        assert wait_until(lambda: len(calls) >= 3)
        assert poller.running
    finally:
        poller.stop(timeout=2)


def test_stop_from_inside_a_tick():
    calls = []
    poller = None

    def tick():
        calls.append(1)
        poller.stop()

    poller = Poller(tick, interval=0.01)
    poller.start()
    poller.thread.join(timeout=2)

    assert calls == [1]
    assert not poller.running
