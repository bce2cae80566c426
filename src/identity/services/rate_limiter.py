"""Persistent sliding-window limiter for authentication attempts.

Decisions are derived only from AttemptRecord rows, so they hold across
process restarts and between concurrent workers.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from src.identity.core.config import get_settings
from src.identity.core.context import RequestContext
from src.identity.models import AttemptOutcome, AttemptRecord
from src.identity.models.base import utc_now
from src.identity.repositories import AttemptRecordRepository, StoreLockRepository


@dataclass(frozen=True)
class Allowed:
    pass


@dataclass(frozen=True)
class Blocked:
    retry_after: int  # seconds until the window drops below the threshold


type RateDecision = Allowed | Blocked


class RateLimiter:
    """Counts failed attempts per (IP, identifier) pair in a trailing window.

    Callers run ``acquire`` -> ``check_allowed`` -> ``record_attempt`` and then
    commit, all in one transaction. ``acquire`` serializes concurrent requests
    for the same pair, so the threshold-th failure is always visible to the
    next request before it decides.
    """

    def __init__(
        self,
        attempt_repo: AttemptRecordRepository,
        lock_repo: StoreLockRepository,
        max_attempts: int | None = None,
        window: timedelta | None = None,
    ):
        settings = get_settings()
        self.attempt_repo = attempt_repo
        self.lock_repo = lock_repo
        self.max_attempts = max_attempts or settings.login_max_attempts
        self.window = window or timedelta(minutes=settings.login_window_minutes)

    @staticmethod
    def lock_key(ip_address: str, identifier: str) -> str:
        return f"login:{ip_address}:{identifier}"

    async def acquire(self, ip_address: str, identifier: str) -> None:
        """Serialize attempts for this pair until the transaction ends."""
        await self.lock_repo.acquire(self.lock_key(ip_address, identifier))

    async def check_allowed(
        self, ip_address: str, identifier: str, now: datetime | None = None
    ) -> RateDecision:
        now = now or utc_now()
        failures = await self.attempt_repo.failure_times(ip_address, identifier, now - self.window)
        if len(failures) < self.max_attempts:
            return Allowed()

        # Allowed again once enough of the oldest failures leave the window
        unblock_at = failures[len(failures) - self.max_attempts] + self.window
        retry_after = max(1, math.ceil((unblock_at - now).total_seconds()))
        return Blocked(retry_after=retry_after)

    def record_attempt(
        self,
        ctx: RequestContext,
        identifier: str,
        outcome: AttemptOutcome,
        now: datetime | None = None,
    ) -> AttemptRecord:
        """Append one attempt to the current transaction (no flush/commit)."""
        record = AttemptRecord(
            ip_address=ctx.ip_address,
            identifier=identifier,
            outcome=outcome.value,
            user_agent=ctx.user_agent[:512] if ctx.user_agent else None,
            attempted_at=now or utc_now(),
        )
        self.attempt_repo.add(record)
        return record
