"""Debouncer -- 按 key 合并短时间内的重复推送

每个 key 至多一个待执行的 asyncio.Task；同一 key 再次调度时取消旧任务、
以新回调替换。回调执行前先从映射中移除 key，执行期间的新调度不会被误取消。

只用于平滑实时推送，落盘记录不经过这里。
"""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

log = structlog.get_logger()


class Debouncer:
    """基于 asyncio.Task 的防抖调度器"""

    def __init__(self, window_ms: int = 50) -> None:
        self._window_s = max(window_ms, 0) / 1000
        self._pending: dict[str, asyncio.Task] = {}
        self._closed = False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def schedule(self, key: str, callback: Callable[[], Awaitable[None]]) -> None:
        """在窗口期后执行 callback；已有同 key 待执行任务时取消并替换"""
        if self._closed:
            return
        previous = self._pending.pop(key, None)
        if previous is not None and not previous.done():
            previous.cancel()
        self._pending[key] = asyncio.create_task(self._run(key, callback))

    async def _run(self, key: str, callback: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(self._window_s)
        # 执行前移除，之后同 key 的调度会创建新任务
        if self._pending.get(key) is asyncio.current_task():
            del self._pending[key]
        try:
            await callback()
        except Exception as e:
            log.warning(
                "debounced_push_failed",
                key=key,
                error_type=type(e).__name__,
                error=str(e),
            )

    async def cancel_all(self) -> None:
        """关闭时取消所有待执行的推送"""
        self._closed = True
        tasks = list(self._pending.values())
        self._pending.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
