import asyncio
from functools import partial
from typing import Any, Callable


class AsyncioBaseService:
    async def run_blocking(
        self,
        func: Callable[..., Any],
        *args,
        executor=None,
        **kwargs,
    ) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, partial(func, *args, **kwargs))


asyncio_run = AsyncioBaseService()
