"""
Fixed-window rate limiter with an injected clock.
"""
from labelsafe.rate_limiter import FixedWindowRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_budget_per_window():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=3, window_seconds=60, clock=clock)
    assert [limiter.allow("ip") for _ in range(4)] == [True, True, True, False]


def test_window_resets():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
    assert limiter.allow("ip")
    assert not limiter.allow("ip")
    clock.now += 60
    assert limiter.allow("ip")


def test_keys_independent():
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
    assert limiter.allow("a")
    assert limiter.allow("b")
    assert not limiter.allow("a")


def test_retry_after():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
    assert limiter.retry_after("ip") == 0.0
    limiter.allow("ip")
    clock.now += 15
    assert limiter.retry_after("ip") == 45.0


def test_reset():
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
    limiter.allow("a")
    limiter.allow("b")
    limiter.reset("a")
    assert limiter.allow("a")
    assert not limiter.allow("b")
    limiter.reset()
    assert limiter.allow("b")


def test_expired_windows_dropped():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
    for ip in ("a", "b", "c"):
        limiter.allow(ip)
    assert limiter.active_windows() == 3
    clock.now += 30
    limiter.allow("d")
    assert limiter.active_windows() == 4
    clock.now += 45
    assert limiter.allow("e")
    # a, b and c expired; d is still inside its window
    assert limiter.active_windows() == 2
    assert not limiter.allow("d")
