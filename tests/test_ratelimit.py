from ratelimit import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_limit_per_client_and_window():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=3, window=60, clock=clock)
    assert [limiter.hit('a') for _ in range(4)] == [False, False, False, True]
    # other clients are unaffected
    assert limiter.hit('b') is False
    clock.now += 61
    assert limiter.hit('a') is False


def test_reset_clears_history():
    limiter = RateLimiter(max_requests=1, window=60)
    assert limiter.hit('a') is False
    assert limiter.hit('a') is True
    limiter.reset()
    assert limiter.hit('a') is False
