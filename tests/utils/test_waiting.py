import pytest

from placecrawl.utils.waiting import wait_for
from tests.fakes import FakeClock


def test_returns_as_soon_as_predicate_passes():
    clock = FakeClock()
    calls = iter([False, False, True])
    assert wait_for(lambda: next(calls), timeout=10, interval=0.5, sleep_fn=clock.sleep, clock_fn=clock.clock)
    assert clock.sleeps == [0.5, 0.5]


def test_timeout_raises_with_message():
    clock = FakeClock()
    with pytest.raises(TimeoutError, match="place never showed"):
        wait_for(
            lambda: False, timeout=2, interval=0.5, sleep_fn=clock.sleep, clock_fn=clock.clock,
            timeout_message="place never showed",
        )
    assert clock.now == 2


def test_no_throw_returns_false():
    clock = FakeClock()
    assert wait_for(lambda: False, timeout=1, sleep_fn=clock.sleep, clock_fn=clock.clock, no_throw=True) is False
