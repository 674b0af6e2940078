"""Fixed-window, in-memory rate limiting (per process).

Every rule whose path prefix matches a request is applied, so an auth call
counts against both the auth rule and the general API rule.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass

import jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.config import settings
from app.core.security import ACCESS_TOKEN, decode_token

logger = logging.getLogger(__name__)

_SKIP_PATHS = {"/health", "/ready", "/live", "/api/v2-simple/health"}
_MAX_BUCKETS = 10_000
# Code-checking endpoints; status, setup and backup-codes are only covered by the general rule
_TWO_FACTOR_LIMITED = ("test", "enable", "disable", "verify", "reset-request")


@dataclass(frozen=True)
class RateRule:
    name: str
    prefixes: tuple[str, ...]
    window_seconds: int
    max_requests: int
    message: str

    def matches(self, path: str) -> bool:
        return any(path.startswith(p) for p in self.prefixes)


@dataclass
class _Bucket:
    window_start: float
    count: int


def default_rules() -> list[RateRule]:
    api = settings.api_prefix.rstrip("/")
    rules = [
        RateRule(
            "auth",
            (f"{api}/auth/login", f"{api}/auth/register", f"{api}/auth/forgot-password"),
            15 * 60,
            5,
            "Too many authentication attempts",
        ),
        RateRule(
            "two_factor",
            tuple(f"{api}/auth/2fa/{name}" for name in _TWO_FACTOR_LIMITED),
            15 * 60,
            5,
            "Too many 2FA attempts",
        ),
        RateRule("upload", (f"{api}/v2/uploads",), 60, 10, "Too many file uploads"),
        RateRule(
            "general",
            (f"{api}/",),
            settings.rate_limit_window_seconds,
            settings.rate_limit_max_requests,
            "Too many API requests",
        ),
    ]
    if settings.is_development:
        rules = [
            RateRule(r.name, r.prefixes, r.window_seconds, r.max_requests * 10, r.message) for r in rules
        ]
    return rules


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, rules: list[RateRule] | None = None, enabled: bool | None = None):
        super().__init__(app)
        self._rules = rules if rules is not None else default_rules()
        self._enabled = settings.rate_limit_enabled if enabled is None else enabled
        self._buckets: dict[str, _Bucket] = {}

    @staticmethod
    def _client_ip(request: Request) -> str:
        xff = (request.headers.get("x-forwarded-for") or "").strip()
        ip = xff.split(",")[0].strip() if xff else ""
        if not ip and request.client:
            ip = request.client.host
        return ip or "unknown"

    @staticmethod
    def _user_id(request: Request) -> str | None:
        auth = request.headers.get("authorization") or ""
        if not auth.lower().startswith("bearer "):
            return None
        try:
            return decode_token(auth[7:].strip(), ACCESS_TOKEN).get("userId")
        except jwt.InvalidTokenError:
            return None

    def _client_key(self, request: Request) -> str:
        ip = self._client_ip(request)
        user_id = self._user_id(request)
        return f"{ip}-{user_id}" if user_id else ip

    def _prune(self, now: float) -> None:
        longest = max((r.window_seconds for r in self._rules), default=0)
        self._buckets = {
            k: b for k, b in self._buckets.items() if now - b.window_start < longest
        }

    def _hit(self, rule: RateRule, client: str, now: float) -> tuple[int, int]:
        """Count one request; return (remaining, seconds_until_reset)."""
        key = f"{rule.name}:{client}"
        bucket = self._buckets.get(key)
        if not bucket or (now - bucket.window_start) >= rule.window_seconds:
            bucket = _Bucket(window_start=now, count=0)
            self._buckets[key] = bucket
        bucket.count += 1
        reset = max(1, math.ceil(rule.window_seconds - (now - bucket.window_start)))
        return rule.max_requests - bucket.count, reset

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if not self._enabled or request.method == "OPTIONS" or path in _SKIP_PATHS:
            return await call_next(request)
        rules = [r for r in self._rules if r.matches(path)]
        if not rules:
            return await call_next(request)

        now = time.time()
        if len(self._buckets) > _MAX_BUCKETS:
            self._prune(now)
        client = self._client_key(request)

        tightest: tuple[int, int] | None = None
        for rule in rules:
            remaining, reset = self._hit(rule, client, now)
            if remaining < 0:
                logger.warning(
                    "Rate limit exceeded (%s) for %s on %s %s", rule.name, client, request.method, path
                )
                return JSONResponse(
                    status_code=429,
                    content={
                        "success": False,
                        "error": "Too many requests",
                        "message": f"{rule.message}. Please try again later.",
                        "retryAfter": reset,
                    },
                    headers={
                        "Retry-After": str(reset),
                        "X-Rate-Limit-Remaining": "0",
                        "X-Rate-Limit-Reset": str(reset),
                    },
                )
            if tightest is None or remaining < tightest[0]:
                tightest = (remaining, reset)

        response = await call_next(request)
        if tightest is not None:
            response.headers["X-Rate-Limit-Remaining"] = str(tightest[0])
            response.headers["X-Rate-Limit-Reset"] = str(tightest[1])
        return response
