"""
应用统计计数器

- COUNTER_FIELDS：计数器声明表（字段、名称模板、描述模板）
- AppStatCounters：单个应用的 17 个 Gauge
- CounterStore：应用名 -> AppStatCounters 的加锁映射（只增不删）
"""

import logging
import threading
from typing import Dict, List, Optional

from .models import AppStatRow, SUMMED_FIELDS
from .registry import GaugeHandle, MetricsRegistry

logger = logging.getLogger(__name__)

DEFAULT_METRIC_PREFIX = "app.pegasus"

NAME_TEMPLATE = "app.stat.{field}#{app}"
DESCRIPTION_TEMPLATE = "statistic the {field} of app {app}"

# 15 个拉取字段 + read_qps + write_qps
COUNTER_FIELDS = tuple(
    (field, NAME_TEMPLATE, DESCRIPTION_TEMPLATE)
    for field in SUMMED_FIELDS + ("read_qps", "write_qps")
)


class AppStatCounters:
    """单个应用的计数器组"""

    def __init__(self, app_name: str, gauges: Dict[str, GaugeHandle]):
        self.app_name = app_name
        self._gauges = gauges

    @classmethod
    def create(
        cls,
        registry: MetricsRegistry,
        app_name: str,
        metric_prefix: str = DEFAULT_METRIC_PREFIX,
    ) -> "AppStatCounters":
        """
        按 COUNTER_FIELDS 为 app_name 注册全部 Gauge

        全部注册成功或全部不注册：中途失败时注销已注册的 Gauge 后再抛出。

        Raises:
            ValueError: 注册表拒绝注册时抛出
        """
        gauges = {}
        registered = []
        try:
            for field, name_template, description_template in COUNTER_FIELDS:
                metric_name = name_template.format(field=field, app=app_name)
                gauges[field] = registry.register_gauge(
                    metric_prefix,
                    metric_name,
                    description_template.format(field=field, app=app_name),
                )
                registered.append(metric_name)
        except ValueError:
            for metric_name in registered:
                registry.unregister(metric_prefix, metric_name)
            raise
        return cls(app_name, gauges)

    def __getattr__(self, field: str) -> GaugeHandle:
        gauges = self.__dict__.get("_gauges", {})
        if field in gauges:
            return gauges[field]
        raise AttributeError(field)

    def __len__(self) -> int:
        return len(self._gauges)

    def fields(self) -> List[str]:
        return list(self._gauges)

    def update(self, row: AppStatRow):
        """用 row 覆盖全部计数器"""
        for field in SUMMED_FIELDS:
            self._gauges[field].set(getattr(row, field))
        self._gauges["read_qps"].set(row.read_qps)
        self._gauges["write_qps"].set(row.write_qps)

    def values(self) -> Dict[str, float]:
        """当前值快照"""
        return {field: gauge.value for field, gauge in self._gauges.items()}


class CounterStore:
    """
    计数器仓库

    首次遇到应用名时创建计数器组，之后复用；不支持删除。
    查找与插入在同一个临界区内完成，保证同名 Gauge 至多注册一次。
    临界区内没有 await，使用 threading.Lock，可跨线程和事件循环调用。
    """

    def __init__(self, registry: MetricsRegistry, metric_prefix: str = DEFAULT_METRIC_PREFIX):
        self.registry = registry
        self.metric_prefix = metric_prefix
        # {app_name: AppStatCounters}
        self._counters: Dict[str, AppStatCounters] = {}
        self._lock = threading.Lock()

    def get_or_create(self, app_name: str) -> AppStatCounters:
        """
        获取应用的计数器组，不存在则创建

        Raises:
            ValueError: 注册表拒绝注册时抛出
        """
        with self._lock:
            counters = self._counters.get(app_name)
            if counters is not None:
                return counters
            counters = AppStatCounters.create(self.registry, app_name, self.metric_prefix)
            self._counters[app_name] = counters
            logger.debug(f"Created counters for app {app_name}")
            return counters

    def get(self, app_name: str) -> Optional[AppStatCounters]:
        return self._counters.get(app_name)

    def app_names(self) -> List[str]:
        return list(self._counters)

    def __contains__(self, app_name: str) -> bool:
        return app_name in self._counters

    def __len__(self) -> int:
        return len(self._counters)
