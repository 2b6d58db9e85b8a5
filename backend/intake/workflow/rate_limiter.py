from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable

from intake.core.config import settings
from intake.core.errors import RateLimited

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class LimiterState:
    attempts: int = 0
    limited: bool = False
    remaining_seconds: int = 0

def register_attempt(state: LimiterState, limit: int, cooldown: int) -> tuple[LimiterState, bool]:
    """Count one file selection. Returns the new state and whether analysis may run.

    The attempt that reaches `limit` is itself rejected.
    """
    if state.limited:
        return state, False
    attempts = state.attempts + 1
    if attempts >= limit:
        return LimiterState(attempts=attempts, limited=True, remaining_seconds=cooldown), False
    return replace(state, attempts=attempts), True

def tick(state: LimiterState) -> LimiterState:
    if not state.limited:
        return state
    if state.remaining_seconds <= 1:
        return LimiterState()
    return replace(state, remaining_seconds=state.remaining_seconds - 1)

class UploadRateLimiter:
    """Attempt counter with a once-per-second cooldown task."""

    def __init__(
        self,
        limit: int | None = None,
        cooldown_seconds: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.limit = limit if limit is not None else settings.upload_attempt_limit
        self.cooldown_seconds = (
            cooldown_seconds if cooldown_seconds is not None else settings.rate_limit_cooldown_seconds
        )
        self.state = LimiterState()
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    @property
    def limited(self) -> bool:
        return self.state.limited

    def attempt(self) -> None:
        """Register a selection or raise RateLimited."""
        was_limited = self.state.limited
        self.state, allowed = register_attempt(self.state, self.limit, self.cooldown_seconds)
        if allowed:
            return
        if not was_limited:
            logger.info("Upload limit of %s reached, cooling down %ss", self.limit, self.cooldown_seconds)
            self._start_countdown()
        raise RateLimited(self.state.remaining_seconds)

    def _start_countdown(self) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._countdown())

    async def _countdown(self) -> None:
        while self.state.limited:
            await self._sleep(1)
            self.state = tick(self.state)
        logger.info("Upload limit cleared")

    async def wait_reset(self) -> None:
        if self._task is not None:
            await self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
