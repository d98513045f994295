"""
Rate Limiting Middleware
Sliding-window limits on logins, signups and write requests
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Tuple
import threading
import time
import logging

from divecenter.core.config import settings

logger = logging.getLogger(__name__)

READ_METHODS = ("GET", "HEAD", "OPTIONS")


@dataclass
class RateLimitRule:
    prefix: str
    limit: int
    window: int
    include_reads: bool = False


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0


def default_rules() -> List[RateLimitRule]:
    """Most specific prefix first; the last rule catches every other write"""
    window = settings.RATE_LIMIT_WINDOW_SECONDS
    writes = settings.RATE_LIMIT_WRITES_PER_WINDOW
    return [
        RateLimitRule('/api/v1/auth/login', settings.RATE_LIMIT_LOGIN_PER_WINDOW, window, include_reads=True),
        RateLimitRule('/api/v1/auth/signup', 3, 300, include_reads=True),
        RateLimitRule('/api/v1/files/upload', max(1, writes // 5), window),
        RateLimitRule('/api/v1/payments', max(1, writes // 3), window),
        RateLimitRule('/api/v1/', writes, window),
    ]


class RateLimiter:
    """
    Thread-safe in-memory limiter keyed by rule, client and bearer token.
    Limits are per process; a multi-worker deployment multiplies them.
    """

    def __init__(self, rules: Optional[List[RateLimitRule]] = None, clock=time.monotonic):
        self.rules = rules if rules is not None else default_rules()
        self._clock = clock
        self._hits: Dict[Tuple[str, str], Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def rule_for(self, path: str, method: str) -> Optional[RateLimitRule]:
        for rule in self.rules:
            if path.startswith(rule.prefix):
                if method in READ_METHODS and not rule.include_reads:
                    return None
                return rule
        return None

    @staticmethod
    def client_key(request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
        elif request.client:
            ip = request.client.host
        else:
            ip = "unknown"

        auth_header = request.headers.get("Authorization", "")
        token = auth_header[7:] if auth_header.startswith("Bearer ") else ""
        # Tokens share a header prefix, so key on the signature tail
        return f"{ip}:{token[-16:] or 'anonymous'}"

    def hit(self, rule: RateLimitRule, client: str) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            hits = self._hits[(rule.prefix, client)]
            while hits and hits[0] <= now - rule.window:
                hits.popleft()

            if len(hits) >= rule.limit:
                retry_after = max(1, int(hits[0] + rule.window - now))
                return RateLimitResult(False, rule.limit, 0, retry_after)

            hits.append(now)
            return RateLimitResult(True, rule.limit, rule.limit - len(hits))

    def check(self, request: Request) -> Optional[RateLimitResult]:
        rule = self.rule_for(request.url.path, request.method)
        if rule is None:
            return None
        result = self.hit(rule, self.client_key(request))
        if not result.allowed:
            logger.warning(f"Rate limit exceeded on {rule.prefix} for {request.client.host if request.client else 'unknown'}")
        return result


class RateLimitMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for rate limiting"""

    def __init__(self, app, enabled: Optional[bool] = None, limiter: Optional[RateLimiter] = None):
        super().__init__(app)
        self.enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled
        self.limiter = limiter or RateLimiter()

    async def dispatch(self, request: Request, call_next):
        if not self.enabled:
            return await call_next(request)

        result = self.limiter.check(request)
        if result is not None and not result.allowed:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    'detail': 'Too many requests. Please try again later.',
                    'retry_after': result.retry_after
                },
                headers={
                    'Retry-After': str(result.retry_after),
                    'X-RateLimit-Limit': str(result.limit),
                    'X-RateLimit-Remaining': '0',
                }
            )

        response = await call_next(request)
        if result is not None:
            response.headers['X-RateLimit-Limit'] = str(result.limit)
            response.headers['X-RateLimit-Remaining'] = str(result.remaining)
        return response
