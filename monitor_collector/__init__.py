"""
Monitor Collector - 应用统计采集器

负责：
- 每 10s 拉取 KV 存储所有应用的统计行
- 计算全集群汇总行 _all_
- 将每个应用的读写 QPS、存储等 17 个指标写入 Gauge，供外部监控抓取
"""

__version__ = "1.0.0"
__author__ = "AI-B"

from .collector import InfoCollector
from .config import AppConfig, CollectorConfig, load_config
from .counters import AppStatCounters, CounterStore
from .models import ALL_APP_NAME, AppStatRow, build_all_row
from .registry import GaugeHandle, MetricsRegistry
from .scheduler import PeriodicTask

__all__ = [
    "ALL_APP_NAME",
    "AppConfig",
    "AppStatCounters",
    "AppStatRow",
    "CollectorConfig",
    "CounterStore",
    "GaugeHandle",
    "InfoCollector",
    "MetricsRegistry",
    "PeriodicTask",
    "build_all_row",
    "load_config",
]
