import asyncio
import logging
from typing import Any, Awaitable, Callable

from fastapi import BackgroundTasks
from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_exponential

from estate_market.core.settings import settings

logger = logging.getLogger(__name__)


class Notifier:
    """Best-effort side channel.

    Work is scheduled after the response; failures are retried a bounded
    number of times, then logged and dropped. The request never sees them.
    """

    def __init__(self, max_attempts: int | None = None, retry_delay: float = 0.5):
        self.max_attempts = max(1, max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS)
        self.retry_delay = retry_delay
        self._tasks: set[asyncio.Task] = set()

    def dispatch(
        self,
        background_tasks: BackgroundTasks | None,
        func: Callable[..., Awaitable[Any]],
        *args,
        **kwargs,
    ) -> None:
        if background_tasks is None:
            task = asyncio.get_running_loop().create_task(
                self.run(func, *args, **kwargs)
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return
        background_tasks.add_task(self.run, func, *args, **kwargs)

    def _log_attempt(self, name: str):
        def before_sleep(retry_state) -> None:
            logger.warning(
                f"Notification '{name}' failed "
                f"(attempt {retry_state.attempt_number}/{self.max_attempts}): "
                f"{retry_state.outcome.exception()}"
            )

        return before_sleep

    async def run(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> bool:
        name = getattr(func, "__name__", repr(func))
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.retry_delay, min=0, max=self.retry_delay * 10
            ),
            before_sleep=self._log_attempt(name),
        )
        try:
            await retrying(func, *args, **kwargs)
            return True
        except RetryError as e:
            logger.error(
                f"Notification '{name}' dropped after {self.max_attempts} attempts: "
                f"{e.last_attempt.exception()}"
            )
            return False


notifier = Notifier()
