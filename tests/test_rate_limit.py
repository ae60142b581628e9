import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from wallybot.middleware.rate_limit import RateLimiter, RateLimitExceeded, RateLimitMiddleware


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter(window_seconds=900, max_requests=100, clock=clock)


def test_requests_within_limit_count_down(limiter):
    remaining = [limiter.check("+15550001").remaining for _ in range(100)]

    assert remaining == list(range(99, -1, -1))


def test_request_over_limit_blocks_client(limiter):
    for _ in range(100):
        limiter.check("+15550001")

    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.check("+15550001")

    assert exc_info.value.retry_after == 300
    assert exc_info.value.error == "Rate limit exceeded"
    assert exc_info.value.message == "Too many requests. You are now blocked for 300 seconds."
    assert limiter.is_blocked("+15550001")


def test_blocked_client_rejected_for_block_duration(limiter, clock):
    for _ in range(101):
        try:
            limiter.check("+15550001")
        except RateLimitExceeded:
            pass

    clock.advance(120)
    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.check("+15550001")
    assert exc_info.value.error == "Too many requests"
    assert exc_info.value.retry_after == 180
    assert exc_info.value.message == "You are temporarily blocked. Try again in 180 seconds."

    clock.advance(179)
    with pytest.raises(RateLimitExceeded):
        limiter.check("+15550001")


def test_block_expiry_starts_fresh_window(limiter, clock):
    for _ in range(101):
        try:
            limiter.check("+15550001")
        except RateLimitExceeded:
            pass

    clock.advance(301)
    status = limiter.check("+15550001")

    assert status.count == 1
    assert status.remaining == 99
    assert status.reset_at == clock.now + 900


def test_window_resets_after_it_elapses(limiter, clock):
    for _ in range(60):
        limiter.check("+15550001")

    clock.advance(900)
    assert limiter.check("+15550001").count == 61

    clock.advance(1)
    assert limiter.check("+15550001").count == 1


def test_clients_are_counted_independently(limiter):
    for _ in range(100):
        limiter.check("+15550001")

    assert limiter.check("+15550002").remaining == 99
    with pytest.raises(RateLimitExceeded):
        limiter.check("+15550001")


def test_cleanup_drops_idle_clients_and_expired_blocks(limiter, clock):
    limiter.check("+15550001")
    for _ in range(101):
        try:
            limiter.check("+15550002")
        except RateLimitExceeded:
            pass

    assert limiter.cleanup() == (0, 0)

    clock.advance(301)
    assert limiter.cleanup() == (0, 1)

    clock.advance(1500)
    assert limiter.cleanup() == (2, 0)
    assert limiter.stats()["active_clients"] == 0


def test_reset_header_is_iso_timestamp():
    limiter = RateLimiter(window_seconds=60, max_requests=5, clock=FakeClock(0.0))

    headers = limiter.check("10.0.0.1").headers()

    assert headers == {
        "X-RateLimit-Limit": "5",
        "X-RateLimit-Remaining": "4",
        "X-RateLimit-Reset": "1970-01-01T00:01:00.000Z",
    }


def _app(limiter: RateLimiter) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, rate_limiter=limiter, exclude_paths=["/health"])

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    @app.post("/form")
    async def form():
        return {"ok": True}

    return app


def test_middleware_keys_form_posts_by_sender(clock):
    limiter = RateLimiter(window_seconds=900, max_requests=1, clock=clock)
    client = TestClient(_app(limiter))

    first = client.post("/form", data={"From": "whatsapp:+15550001", "Body": "hi"})
    other = client.post("/form", data={"From": "whatsapp:+15550002", "Body": "hi"})
    blocked = client.post("/form", data={"From": "whatsapp:+15550001", "Body": "hi"})

    assert first.status_code == 200
    assert other.status_code == 200
    assert blocked.status_code == 429
    assert blocked.json()["retryAfter"] == 300


def test_middleware_falls_back_to_client_ip(clock):
    limiter = RateLimiter(window_seconds=900, max_requests=1, clock=clock)
    client = TestClient(_app(limiter))

    assert client.get("/ping").status_code == 200
    assert client.get("/ping").status_code == 429
    assert limiter.is_blocked("testclient")


def test_middleware_skips_excluded_paths(clock):
    limiter = RateLimiter(window_seconds=900, max_requests=1, clock=clock)
    client = TestClient(_app(limiter))

    for _ in range(3):
        assert client.get("/health").status_code == 200
    assert limiter.stats()["active_clients"] == 0


def test_middleware_keys_unverified_senders_by_ip(clock):
    limiter = RateLimiter(window_seconds=900, max_requests=5, clock=clock)
    app = FastAPI()
    app.add_middleware(
        RateLimitMiddleware,
        rate_limiter=limiter,
        verify_sender=lambda request, form: form.get("MessageSid") == ["SMok"],
    )

    @app.post("/form")
    async def form():
        return {"ok": True}

    client = TestClient(app)
    client.post("/form", data={"From": "whatsapp:+15550001", "MessageSid": "SMok"})
    client.post("/form", data={"From": "whatsapp:+15550001", "MessageSid": "SMforged"})

    assert limiter.check("+15550001").remaining == 3
    assert limiter.check("testclient").remaining == 3
