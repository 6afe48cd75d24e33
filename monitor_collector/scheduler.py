"""
周期任务调度

固定频率触发回调：
- 首次触发在 initial_delay（默认一个周期）之后，不立即执行
- 同一时刻最多一个回调在执行；超时导致错过的周期直接跳过，不排队
- 回调异常只记录日志，不会终止调度
- stop() 幂等，等待正在执行的回调结束后返回
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """单飞（single-flight）周期任务"""

    def __init__(
        self,
        callback: Callable[[], Awaitable[object]],
        interval_seconds: float,
        initial_delay_seconds: Optional[float] = None,
        name: str = "periodic-task",
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        if initial_delay_seconds is not None and initial_delay_seconds < 0:
            raise ValueError(f"initial_delay_seconds must not be negative, got {initial_delay_seconds}")

        self.name = name
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = (
            interval_seconds if initial_delay_seconds is None else initial_delay_seconds
        )
        self.run_count = 0
        self.skipped_ticks = 0

        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """
        启动调度（需在事件循环中调用）

        Raises:
            RuntimeError: 已在运行时抛出
        """
        if self.running:
            raise RuntimeError(f"{self.name} is already running")

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop(), name=self.name)
        logger.info(
            f"Started {self.name} (interval={self.interval_seconds}s, "
            f"initial_delay={self.initial_delay_seconds}s)"
        )

    async def stop(self):
        """
        停止调度

        等待正在执行的回调结束；在回调内部调用时只发出停止请求，
        当前回调返回后循环退出。
        """
        task = self._task
        if task is None:
            return

        self._stop_event.set()
        if task is asyncio.current_task():
            return

        # asyncio.wait 不会把调用方的取消传递给 task
        await asyncio.wait({task})
        if self._task is task:
            self._task = None
        logger.info(f"Stopped {self.name} after {self.run_count} runs")

    async def _wait_for_stop(self, deadline: float) -> bool:
        """等待到 deadline，期间收到停止请求返回 True"""
        timeout = max(0.0, deadline - asyncio.get_running_loop().time())
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def _run_loop(self):
        loop = asyncio.get_running_loop()
        next_fire = loop.time() + self.initial_delay_seconds

        while not self._stop_event.is_set():
            if await self._wait_for_stop(next_fire):
                break

            try:
                await self._callback()
            except Exception as e:
                logger.error(f"{self.name} run failed: {e}", exc_info=True)
            self.run_count += 1

            next_fire += self.interval_seconds
            now = loop.time()
            if next_fire < now:
                missed = int((now - next_fire) // self.interval_seconds) + 1
                next_fire += missed * self.interval_seconds
                self.skipped_ticks += missed
                logger.warning(f"{self.name} overran its interval, skipped {missed} tick(s)")
