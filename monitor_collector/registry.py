"""
指标注册表

基于 prometheus_client 的线程安全 Gauge 注册表。

计数器全名格式：<family_prefix>*<metric_name>，其中 metric_name 可带实例后缀
（如 app.stat.get_qps#app1）。映射到 Prometheus 时：
- 指标名：family_prefix + "." + "#" 之前的部分，非法字符替换为 "_"
- 标签：app = "#" 之后的部分
"""

import re
import threading
from typing import Dict, List, Optional, Tuple

from prometheus_client import CollectorRegistry, Gauge

INSTANCE_SEPARATOR = "#"
INSTANCE_LABEL = "app"

_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def to_prometheus_name(family_prefix: str, base_name: str) -> str:
    """将计数器名转换为合法的 Prometheus 指标名"""
    name = _INVALID_CHARS.sub("_", f"{family_prefix}.{base_name}")
    if name[0].isdigit():
        name = "_" + name
    return name


def split_metric_name(metric_name: str) -> Tuple[str, Optional[str]]:
    """拆分 metric_name 为 (基础名, 实例名)"""
    if INSTANCE_SEPARATOR in metric_name:
        base, instance = metric_name.split(INSTANCE_SEPARATOR, 1)
        return base, instance
    return metric_name, None


class GaugeHandle:
    """单个 Gauge 的句柄（覆盖写，不累加）"""

    def __init__(self, full_name: str, description: str, gauge):
        self.full_name = full_name
        self.description = description
        self._gauge = gauge
        self._value = 0.0

    def set(self, value: float):
        """设置当前值"""
        self._value = float(value)
        self._gauge.set(self._value)

    @property
    def value(self) -> float:
        return self._value

    def __repr__(self) -> str:
        return f"GaugeHandle({self.full_name!r}, value={self._value})"


class MetricsRegistry:
    """
    Gauge 注册表

    每个实例持有独立的 CollectorRegistry（可注入），互不干扰。
    同名计数器只能注册一次，重复注册抛出 ValueError。
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self._registry = registry if registry is not None else CollectorRegistry()
        # 已注册句柄：{full_name: GaugeHandle}
        self._handles: Dict[str, GaugeHandle] = {}
        # Prometheus 指标族：{prometheus_name: (Gauge, 是否带实例标签)}
        self._families: Dict[str, Tuple[Gauge, bool]] = {}
        self._lock = threading.Lock()

    @property
    def collector_registry(self) -> CollectorRegistry:
        """底层 CollectorRegistry（供宿主进程选择导出方式）"""
        return self._registry

    @staticmethod
    def full_name(family_prefix: str, metric_name: str) -> str:
        return f"{family_prefix}*{metric_name}"

    def register_gauge(self, family_prefix: str, metric_name: str, description: str) -> GaugeHandle:
        """
        注册一个 Gauge

        Args:
            family_prefix: 指标族前缀（如 app.pegasus）
            metric_name: 计数器名（如 app.stat.get_qps#app1）
            description: 描述

        Returns:
            GaugeHandle

        Raises:
            ValueError: 名称重复或与已有指标族冲突时抛出
        """
        full_name = self.full_name(family_prefix, metric_name)
        base_name, instance = split_metric_name(metric_name)
        prom_name = to_prometheus_name(family_prefix, base_name)
        labelled = instance is not None

        with self._lock:
            if full_name in self._handles:
                raise ValueError(f"Duplicated metric: {full_name}")

            family = self._families.get(prom_name)
            if family is None:
                gauge = Gauge(
                    prom_name,
                    description if not labelled else f"{family_prefix} {base_name}",
                    [INSTANCE_LABEL] if labelled else [],
                    registry=self._registry,
                )
                family = (gauge, labelled)
                self._families[prom_name] = family

            gauge, family_labelled = family
            if family_labelled != labelled:
                raise ValueError(
                    f"Metric {full_name} conflicts with existing family {prom_name}"
                )

            target = gauge.labels(**{INSTANCE_LABEL: instance}) if labelled else gauge
            handle = GaugeHandle(full_name, description, target)
            self._handles[full_name] = handle
            return handle

    def unregister(self, family_prefix: str, metric_name: str) -> bool:
        """
        注销一个 Gauge（用于注册失败时回滚）

        Returns:
            是否存在并被注销
        """
        full_name = self.full_name(family_prefix, metric_name)
        base_name, instance = split_metric_name(metric_name)
        prom_name = to_prometheus_name(family_prefix, base_name)

        with self._lock:
            if self._handles.pop(full_name, None) is None:
                return False

            gauge, labelled = self._families[prom_name]
            if labelled:
                gauge.remove(instance)
            if not any(
                to_prometheus_name(*self._split_full_name(name)) == prom_name
                for name in self._handles
            ):
                self._registry.unregister(gauge)
                del self._families[prom_name]
            return True

    @staticmethod
    def _split_full_name(full_name: str) -> Tuple[str, str]:
        family_prefix, metric_name = full_name.split("*", 1)
        return family_prefix, split_metric_name(metric_name)[0]

    def get(self, family_prefix: str, metric_name: str) -> Optional[GaugeHandle]:
        with self._lock:
            return self._handles.get(self.full_name(family_prefix, metric_name))

    def get_value(self, family_prefix: str, metric_name: str) -> Optional[float]:
        """读取计数器当前值，未注册返回 None"""
        handle = self.get(family_prefix, metric_name)
        return handle.value if handle is not None else None

    def names(self) -> List[str]:
        """所有已注册计数器全名（按注册顺序）"""
        with self._lock:
            return list(self._handles)

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
