"""Throttling of admin sign-in attempts.

Failures are counted per (normalised email, client address).  Once a pair
reaches ``max_failures`` every further failure locks it out for the next
step of the ladder (30s, 1m, 2m, 4m, then 15m for good).  A successful
sign-in clears the pair.  Counters live in process memory.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

LOCKOUT_LADDER: tuple[int, ...] = (30, 60, 120, 240, 900)
DEFAULT_MAX_FAILURES = 5


@dataclass
class _Strikes:
    failures: int = 0
    last_failure: float = 0.0
    blocked_until: float = 0.0


class LoginRateLimiter:
    """Per-account, per-address sign-in lockouts.

    ``clock`` is a monotonic time source; tests pass a fake one.
    """

    def __init__(
        self,
        *,
        max_failures: int = DEFAULT_MAX_FAILURES,
        ladder: tuple[int, ...] = LOCKOUT_LADDER,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_failures = max_failures
        self._ladder = ladder
        self._clock = clock
        self._strikes: dict[tuple[str, str], _Strikes] = {}

    @staticmethod
    def _pair(email: str, client_ip: str) -> tuple[str, str]:
        return email.strip().lower(), client_ip

    def retry_after(self, email: str, client_ip: str) -> int:
        """Seconds until *email* may try again from *client_ip*; ``0`` if now."""
        strikes = self._strikes.get(self._pair(email, client_ip))
        if strikes is None:
            return 0
        remaining = strikes.blocked_until - self._clock()
        return int(remaining) + 1 if remaining > 0 else 0

    def record_failure(self, email: str, client_ip: str) -> int:
        """Count a failed attempt.  Returns the lockout it started, in seconds (0 for none)."""
        strikes = self._strikes.setdefault(self._pair(email, client_ip), _Strikes())
        strikes.failures += 1
        strikes.last_failure = self._clock()

        over = strikes.failures - self._max_failures
        if over < 0:
            return 0
        lockout = self._ladder[min(over, len(self._ladder) - 1)]
        strikes.blocked_until = strikes.last_failure + lockout
        logger.warning("Sign-in for %s from %s locked for %ds (%d failures)", email, client_ip, lockout, strikes.failures)
        return lockout

    def reset(self, email: str, client_ip: str) -> None:
        self._strikes.pop(self._pair(email, client_ip), None)

    def prune(self, idle_seconds: float = 3600) -> int:
        """Forget pairs that are not locked and have been idle for *idle_seconds*."""
        now = self._clock()
        idle = [
            pair
            for pair, strikes in self._strikes.items()
            if strikes.blocked_until <= now and now - strikes.last_failure > idle_seconds
        ]
        for pair in idle:
            del self._strikes[pair]
        return len(idle)
