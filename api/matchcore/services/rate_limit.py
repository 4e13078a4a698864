"""
Per-route request budgets.

A policy names a budget and says who it belongs to. Compare-set writes are
budgeted per validated actor id. Search is budgeted per actor when the caller
names one and per socket peer address otherwise; forwarding headers are not
consulted.
"""
from __future__ import annotations

import math
import threading
import time
from collections import deque
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, Response

from ..config import RL_COMPARE_WRITE_LIMIT, RL_SEARCH_LIMIT, RL_WINDOW_SECONDS
from ..deps import optional_actor, require_actor


@dataclass(frozen=True)
class RatePolicy:
    name: str
    limit: int
    window_seconds: int
    actor_required: bool = False


@dataclass(frozen=True)
class RateBudget:
    allowed: bool
    remaining: int
    retry_after_seconds: int = 0


POLICIES: dict[str, RatePolicy] = {
    "search": RatePolicy("search", RL_SEARCH_LIMIT, RL_WINDOW_SECONDS),
    "compare_write": RatePolicy("compare_write", RL_COMPARE_WRITE_LIMIT, RL_WINDOW_SECONDS, actor_required=True),
}


class SlidingWindowLimiter:
    """Hit timestamps per (policy, caller), pruned lazily on each request."""

    def __init__(self) -> None:
        self._hits: dict[tuple[str, str], deque[float]] = {}
        self._lock = threading.Lock()

    def consume(self, policy: RatePolicy, caller: str, now: float | None = None) -> RateBudget:
        now = time.monotonic() if now is None else now
        cutoff = now - policy.window_seconds
        with self._lock:
            hits = self._hits.setdefault((policy.name, caller), deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= policy.limit:
                wait = max(1, math.ceil(hits[0] + policy.window_seconds - now))
                return RateBudget(allowed=False, remaining=0, retry_after_seconds=wait)
            hits.append(now)
            return RateBudget(allowed=True, remaining=policy.limit - len(hits))

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


limiter = SlidingWindowLimiter()


def _peer_address(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _enforce(policy_name: str, caller: str, response: Response) -> None:
    policy = POLICIES[policy_name]
    budget = limiter.consume(policy, caller)
    if not budget.allowed:
        raise HTTPException(
            status_code=429,
            detail=f"Too many {policy.name} requests. Retry in {budget.retry_after_seconds}s",
            headers={"Retry-After": str(budget.retry_after_seconds)},
        )
    response.headers["X-RateLimit-Limit"] = str(policy.limit)
    response.headers["X-RateLimit-Remaining"] = str(budget.remaining)


def rate_limited(policy_name: str):
    """Route dependency charging one request against `POLICIES[policy_name]`,
    resolved per request."""
    if POLICIES[policy_name].actor_required:

        def _per_actor(response: Response, actor_user_id: str = Depends(require_actor)) -> None:
            _enforce(policy_name, f"user:{actor_user_id}", response)

        return Depends(_per_actor)

    def _per_caller(
        request: Request,
        response: Response,
        actor_user_id: str | None = Depends(optional_actor),
    ) -> None:
        caller = f"user:{actor_user_id}" if actor_user_id else f"addr:{_peer_address(request)}"
        _enforce(policy_name, caller, response)

    return Depends(_per_caller)
