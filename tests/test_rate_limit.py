import pytest

from security.rate_limit import RateLimiter, client_identifier

from conftest import FakeClock


def test_sixth_request_in_window_is_denied():
    clock = FakeClock(now=120.0)
    limiter = RateLimiter(window_seconds=60, clock=clock)

    results = [limiter.check("1.2.3.4", 5) for _ in range(6)]

    assert [r.allowed for r in results] == [True] * 5 + [False]
    assert [r.remaining for r in results[:5]] == [4, 3, 2, 1, 0]
    assert results[5].remaining == 0
    assert results[5].reset_at == 180


def test_denied_request_does_not_consume_quota():
    clock = FakeClock(now=0.0)
    limiter = RateLimiter(window_seconds=60, clock=clock)
    for _ in range(8):
        limiter.check("a", 2)

    assert limiter._counters == {"a:0": 2}


def test_new_window_starts_fresh_count():
    clock = FakeClock(now=60.0)
    limiter = RateLimiter(window_seconds=60, clock=clock)
    for _ in range(5):
        limiter.check("1.2.3.4", 5)
    assert not limiter.check("1.2.3.4", 5).allowed

    clock.advance(60)

    result = limiter.check("1.2.3.4", 5)
    assert result.allowed
    assert result.remaining == 4


def test_identifiers_are_counted_separately():
    limiter = RateLimiter(window_seconds=60, clock=FakeClock())
    for _ in range(5):
        limiter.check("a", 5)

    assert not limiter.check("a", 5).allowed
    assert limiter.check("b", 5).allowed


def test_retry_after_is_at_least_one_second():
    clock = FakeClock(now=119.9)
    limiter = RateLimiter(window_seconds=60, clock=clock)
    limiter.check("x", 1)
    denied = limiter.check("x", 1)

    assert denied.retry_after(clock()) == 1


def test_cleanup_drops_only_finished_windows():
    clock = FakeClock(now=0.0)
    limiter = RateLimiter(window_seconds=60, cleanup_interval=300, clock=clock)
    limiter.check("old", 5)
    clock.advance(61)
    limiter.check("new", 5)
    assert len(limiter) == 2

    removed = limiter.cleanup()

    assert removed == 1
    assert len(limiter) == 1
    assert limiter.check("new", 5).remaining == 3


def test_lazy_purge_runs_after_cleanup_interval():
    clock = FakeClock(now=0.0)
    limiter = RateLimiter(window_seconds=60, cleanup_interval=300, clock=clock)
    limiter.check("a", 5)
    clock.advance(301)

    limiter.check("b", 5)

    assert len(limiter) == 1


def test_window_must_be_positive():
    with pytest.raises(ValueError):
        RateLimiter(window_seconds=0)


def test_client_identifier_ignores_forwarding_headers(app):
    headers = {"X-Forwarded-For": "203.0.113.7", "X-Real-IP": "198.51.100.2"}
    with app.test_request_context(headers=headers, environ_base={"REMOTE_ADDR": "192.0.2.9"}):
        assert client_identifier() == "192.0.2.9"

    with app.test_request_context(environ_base={"REMOTE_ADDR": ""}):
        assert client_identifier() == "anonymous"
