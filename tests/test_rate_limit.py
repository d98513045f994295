"""
Tests for the sliding-window rate limiter.
"""
from fastapi import FastAPI
from fastapi.testclient import TestClient

from divecenter.core.rate_limit import RateLimiter, RateLimitMiddleware, RateLimitRule


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def limited_app(limiter):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, enabled=True, limiter=limiter)

    @app.post("/api/v1/auth/login")
    async def login():
        return {"ok": True}

    @app.get("/api/v1/customers")
    async def customers():
        return []

    return app


class TestRateLimiter:
    def test_login_limited_with_retry_after(self):
        limiter = RateLimiter(rules=[RateLimitRule("/api/v1/auth/login", 2, 60, include_reads=True)])
        client = TestClient(limited_app(limiter))

        first = client.post("/api/v1/auth/login")
        assert first.status_code == 200
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert client.post("/api/v1/auth/login").status_code == 200

        blocked = client.post("/api/v1/auth/login")
        assert blocked.status_code == 429
        assert int(blocked.headers["Retry-After"]) >= 1

    def test_reads_not_limited_by_write_rule(self):
        limiter = RateLimiter(rules=[RateLimitRule("/api/v1/", 1, 60)])
        client = TestClient(limited_app(limiter))

        for _ in range(3):
            assert client.get("/api/v1/customers").status_code == 200

    def test_window_slides(self):
        clock = FakeClock()
        rule = RateLimitRule("/api/v1/payments", 1, 60)
        limiter = RateLimiter(rules=[rule], clock=clock)

        assert limiter.hit(rule, "10.0.0.1:anonymous").allowed
        blocked = limiter.hit(rule, "10.0.0.1:anonymous")
        assert not blocked.allowed
        assert blocked.retry_after == 60

        clock.now += 61
        assert limiter.hit(rule, "10.0.0.1:anonymous").allowed

    def test_clients_counted_separately(self):
        rule = RateLimitRule("/api/v1/payments", 1, 60)
        limiter = RateLimiter(rules=[rule], clock=FakeClock())

        assert limiter.hit(rule, "10.0.0.1:anonymous").allowed
        assert limiter.hit(rule, "10.0.0.2:anonymous").allowed

    def test_first_matching_rule_wins(self):
        limiter = RateLimiter(rules=[
            RateLimitRule("/api/v1/auth/login", 5, 60, include_reads=True),
            RateLimitRule("/api/v1/", 100, 60),
        ])
        assert limiter.rule_for("/api/v1/auth/login", "POST").limit == 5
        assert limiter.rule_for("/api/v1/invoices", "POST").limit == 100
        assert limiter.rule_for("/api/v1/invoices", "GET") is None
        assert limiter.rule_for("/health", "POST") is None
