#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_fixed

from .errors import RateLimitedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Стратегия повторов: число повторов и постоянная задержка между ними.

    По умолчанию один повтор через 3 секунды, то есть не больше двух
    попыток на один логический вызов.
    """
    max_retries: int = 1
    delay_ms: int = 3000


class RetryExecutor:
    """Выполняет удалённый вызов с повтором при исчерпании квоты.

    Повторяются только ошибки из retry_on (по умолчанию RateLimitedError),
    задержка одинаковая для всех попыток. Остальные ошибки пробрасываются
    сразу; после исчерпания повторов пробрасывается исходная ошибка.
    Операция повторяется целиком, поэтому она должна быть безопасной для повтора.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        retry_on: Tuple[Type[BaseException], ...] = (RateLimitedError,),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._retry_on = retry_on
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
        delay_ms: Optional[int] = None,
    ) -> T:
        retries = self.policy.max_retries if max_retries is None else max_retries
        delay = self.policy.delay_ms if delay_ms is None else delay_ms
        if retries < 0 or delay < 0:
            raise ValueError("max_retries and delay_ms must be non-negative")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            wait=wait_fixed(delay / 1000.0),
            retry=retry_if_exception_type(self._retry_on),
            sleep=self._sleep,
            before_sleep=_log_before_sleep,
            reraise=True,
        )
        # operation может быть и lambda, возвращающей корутину: ждём результат явно
        async for attempt in retrying:
            with attempt:
                return await operation()
        raise RuntimeError("retry loop finished without result")


def _log_before_sleep(state: RetryCallState) -> None:
    logger.warning(
        "retry.rate_limited",
        attempt=state.attempt_number,
        delay_s=state.next_action.sleep if state.next_action else None,
        error=str(state.outcome.exception()) if state.outcome else None,
    )
