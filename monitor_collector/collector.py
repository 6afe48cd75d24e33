"""
应用统计采集器

每隔 app_stat_interval_seconds 拉取所有应用的统计行，计算汇总行 _all_，
并把每个应用（含 _all_）的 17 个指标写入 Gauge。
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from .config import CollectorConfig
from .counters import CounterStore, DEFAULT_METRIC_PREFIX
from .models import ALL_APP_NAME, ALL_APPS_SCOPE, AppStatRow, RowLike, to_row, with_all_row
from .registry import MetricsRegistry
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)

FetchResult = Tuple[bool, Sequence[RowLike]]
FetchRows = Callable[[str], Union[FetchResult, Awaitable[FetchResult]]]


class InfoCollector:
    """
    应用统计采集器

    Args:
        fetch_rows: 拉取函数 fetch_rows(scope) -> (success, rows)，同步或异步均可
        cluster: 集群名称，不能为空
        registry: 指标注册表，默认新建
        interval_seconds: 采集周期（秒）
        initial_delay_seconds: 首次采集延迟，默认等于一个周期
        metric_prefix: 指标族前缀
    """

    def __init__(
        self,
        fetch_rows: FetchRows,
        cluster: str,
        registry: Optional[MetricsRegistry] = None,
        interval_seconds: float = 10,
        initial_delay_seconds: Optional[float] = None,
        metric_prefix: str = DEFAULT_METRIC_PREFIX,
    ):
        if not cluster or not cluster.strip():
            raise ValueError("cluster name must not be empty")

        self.cluster = cluster
        self.registry = registry if registry is not None else MetricsRegistry()
        self.counters = CounterStore(self.registry, metric_prefix)
        self._fetch_rows = fetch_rows
        self._timer = PeriodicTask(
            self.run_cycle,
            interval_seconds,
            initial_delay_seconds,
            name=f"app-stat-timer[{cluster}]",
        )

    @classmethod
    def from_config(
        cls,
        fetch_rows: FetchRows,
        config: CollectorConfig,
        registry: Optional[MetricsRegistry] = None,
    ) -> "InfoCollector":
        return cls(
            fetch_rows,
            cluster=config.cluster,
            registry=registry,
            interval_seconds=config.app_stat_interval_seconds,
            initial_delay_seconds=config.initial_delay_seconds,
            metric_prefix=config.metric_prefix,
        )

    @property
    def timer(self) -> PeriodicTask:
        return self._timer

    @property
    def running(self) -> bool:
        return self._timer.running

    def start(self):
        """启动定时采集（需在事件循环中调用）"""
        self._timer.start()

    async def stop(self):
        """停止定时采集，等待进行中的采集结束"""
        await self._timer.stop()

    async def _fetch(self) -> Any:
        fetch = self._fetch_rows
        if inspect.iscoroutinefunction(fetch) or inspect.iscoroutinefunction(
            getattr(fetch, "__call__", None)
        ):
            return await fetch(ALL_APPS_SCOPE)
        # 同步拉取可能阻塞网络 I/O，放到线程中执行
        result = await asyncio.to_thread(fetch, ALL_APPS_SCOPE)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def fetch_app_rows(self) -> Optional[list]:
        """
        拉取并校验所有应用的统计行

        Returns:
            AppStatRow 列表（不含 _all_）；拉取失败返回 None
        """
        try:
            success, rows = await self._fetch()
        except Exception as e:
            logger.error(f"[{self.cluster}] call get_app_stat() failed: {e}", exc_info=True)
            return None

        if not success:
            logger.error(f"[{self.cluster}] call get_app_stat() failed")
            return None

        try:
            parsed = [to_row(row) for row in rows or []]
        except ValidationError as e:
            logger.error(f"[{self.cluster}] invalid app stat row: {e}")
            return None

        result = []
        for row in parsed:
            if row.row_name == ALL_APP_NAME:
                logger.warning(f"[{self.cluster}] dropped app stat row using reserved name {ALL_APP_NAME}")
                continue
            result.append(row)
        return result

    async def run_cycle(self) -> bool:
        """
        执行一次采集

        拉取失败时不修改任何计数器，保留上一次的值。

        Returns:
            是否成功
        """
        logger.info(f"[{self.cluster}] start to stat apps")

        rows = await self.fetch_app_rows()
        if rows is None:
            return False

        all_rows = with_all_row(rows)
        for row in all_rows:
            counters = self.counters.get_or_create(row.row_name)
            counters.update(row)

        total: AppStatRow = all_rows[-1]
        logger.info(
            f"[{self.cluster}] stat apps succeed, app_count = {len(rows)}, "
            f"total_read_qps = {total.read_qps:.2f}, total_write_qps = {total.write_qps:.2f}"
        )
        return True
