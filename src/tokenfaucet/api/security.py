from __future__ import annotations

import ipaddress
import os
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from tokenfaucet.api.errors import ApiError, error_response


def _truthy(v: str | None) -> bool:
    return (v or "").strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return int(default)
    try:
        return int(str(raw).strip())
    except ValueError:
        return int(default)


def _is_valid_ip(raw: str) -> bool:
    try:
        ipaddress.ip_address(raw)
        return True
    except ValueError:
        return False


def client_ip(request: Request) -> str:
    """Client IP for rate limiting only (never for authorization).

    X-Forwarded-For is honored only with FAUCET_TRUST_PROXY_HEADERS=1; put the
    service behind a proxy that overwrites that header before enabling it.
    """
    if _truthy(os.environ.get("FAUCET_TRUST_PROXY_HEADERS")):
        xff = request.headers.get("x-forwarded-for")
        if xff:
            ip = xff.split(",")[0].strip()
            if _is_valid_ip(ip):
                return ip

    if request.client and request.client.host and _is_valid_ip(str(request.client.host)):
        return str(request.client.host)
    return "unknown"


@dataclass(frozen=True)
class TokenBucket:
    rate_per_sec: float
    burst: float


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory per-IP token bucket, split into read and write buckets.

    Buckets idle longer than ttl_s are pruned every `prune_every` requests and
    the table is capped at max_keys (oldest last-seen evicted first).
    """

    def __init__(
        self,
        app,
        *,
        write_bucket: TokenBucket | None = None,
        read_bucket: TokenBucket | None = None,
        ttl_s: int | None = None,
        max_keys: int | None = None,
        prune_every: int | None = None,
        exempt_prefixes: Tuple[str, ...] = ("/docs", "/openapi.json", "/v1/health"),
    ):
        super().__init__(app)

        # "<ip>:<w|r>" -> (tokens_remaining, last_refill_ts, last_seen_ts)
        self._buckets: Dict[str, Tuple[float, float, float]] = {}

        self._write = write_bucket or TokenBucket(rate_per_sec=1.0, burst=5.0)
        self._read = read_bucket or TokenBucket(rate_per_sec=10.0, burst=40.0)
        self._exempt_prefixes = exempt_prefixes

        self._ttl_s = int(ttl_s) if ttl_s is not None else _env_int("FAUCET_RL_TTL_S", 900)
        self._max_keys = int(max_keys) if max_keys is not None else _env_int("FAUCET_RL_MAX_KEYS", 20_000)
        pe = int(prune_every) if prune_every is not None else _env_int("FAUCET_RL_PRUNE_EVERY", 256)
        self._prune_every = max(1, pe)
        self._req_count = 0

    def _prune(self, now: float) -> None:
        if self._ttl_s > 0:
            cutoff = now - float(self._ttl_s)
            for k in [k for k, v in self._buckets.items() if v[2] < cutoff]:
                del self._buckets[k]

        overflow = len(self._buckets) - self._max_keys
        if self._max_keys > 0 and overflow > 0:
            oldest = sorted(self._buckets.items(), key=lambda kv: kv[1][2])[:overflow]
            for k, _ in oldest:
                del self._buckets[k]

    async def dispatch(self, request: Request, call_next):
        path = request.url.path or ""
        if any(path.startswith(p) for p in self._exempt_prefixes):
            return await call_next(request)

        is_write = (request.method or "").upper() in {"POST", "PUT", "PATCH", "DELETE"}
        bucket = self._write if is_write else self._read
        key = f"{client_ip(request)}:{'w' if is_write else 'r'}"
        now = time.time()

        self._req_count += 1
        if self._req_count % self._prune_every == 0:
            self._prune(now)

        tokens, last, _ = self._buckets.get(key, (bucket.burst, now, now))
        tokens = min(bucket.burst, tokens + (now - last) * bucket.rate_per_sec)
        allowed = tokens >= 1.0
        self._buckets[key] = (tokens - 1.0 if allowed else tokens, now, now)

        if self._max_keys > 0 and len(self._buckets) > self._max_keys:
            self._prune(now)

        if not allowed:
            return error_response(ApiError(429, "rate_limited", "Too many requests", {}))
        return await call_next(request)


def require_caller(request: Request, *, header: str = "x-faucet-account") -> str:
    """Resolved caller account for mutating routes.

    The upstream gateway authenticates the wallet and sets this header; this
    service only checks it is present.
    """
    acct = (request.headers.get(header) or "").strip()
    if not acct:
        raise ApiError.bad_request("caller_missing", f"missing {header} header", {})
    return acct


__all__ = ["RateLimitMiddleware", "TokenBucket", "client_ip", "require_caller"]
