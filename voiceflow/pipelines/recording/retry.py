"""Exponential backoff shared by the Upload and Transcription stages."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from voiceflow.config.settings import PipelineConfig, settings

logger = logging.getLogger("voiceflow.services.recording_pipeline")

T = TypeVar("T")
SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt ``N`` (zero-based) waits ``base_delay_seconds * 2**N`` first.

    Attempt 0 never waits, so the defaults give sleeps of 2s then 4s.
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    jitter_seconds: float = 0.0
    sleep: SleepFn = field(default=asyncio.sleep, compare=False, repr=False)

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig | None = None,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> "RetryPolicy":
        config = config or settings.pipeline
        return cls(
            max_attempts=config.retry_max_attempts,
            base_delay_seconds=config.retry_base_delay_seconds,
            sleep=sleep,
        )

    def delay_for(self, attempt: int) -> float:
        if attempt <= 0:
            return 0.0
        delay = self.base_delay_seconds * (2 ** attempt)
        if self.jitter_seconds > 0:
            delay += random.uniform(0, self.jitter_seconds)
        return delay

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        retry_on: Tuple[Type[BaseException], ...],
        label: str,
    ) -> T:
        """Run ``operation`` until it succeeds or attempts are exhausted.

        Only exceptions in ``retry_on`` are retried; the last one is re-raised
        once every attempt has failed. Anything else propagates immediately.
        """

        last_error: BaseException | None = None
        for attempt in range(self.max_attempts):
            delay = self.delay_for(attempt)
            if delay > 0:
                logger.info(
                    "Retrying %s in %.1fs (attempt %s/%s)",
                    label,
                    delay,
                    attempt + 1,
                    self.max_attempts,
                )
                await self.sleep(delay)
            try:
                return await operation()
            except retry_on as exc:
                last_error = exc
                logger.warning(
                    "%s attempt %s/%s failed: %s",
                    label,
                    attempt + 1,
                    self.max_attempts,
                    exc,
                )

        assert last_error is not None
        raise last_error


__all__ = ["RetryPolicy", "SleepFn"]
