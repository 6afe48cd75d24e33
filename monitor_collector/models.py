"""
数据模型定义

包括：
- AppStatRow：单个应用（或全集群）的一行统计数据
- 汇总行 _all_ 的计算
"""

from typing import Any, List, Mapping, Sequence, Union

from pydantic import BaseModel, ConfigDict


# 汇总行名称（保留字，真实应用不能使用）
ALL_APP_NAME = "_all_"

# 拉取全部应用时使用的 scope
ALL_APPS_SCOPE = ""

# 参与求和的字段（固定顺序）
SUMMED_FIELDS = (
    "get_qps",
    "multi_get_qps",
    "put_qps",
    "multi_put_qps",
    "remove_qps",
    "multi_remove_qps",
    "incr_qps",
    "check_and_set_qps",
    "check_and_mutate_qps",
    "scan_qps",
    "recent_expire_count",
    "recent_filter_count",
    "recent_abnormal_count",
    "storage_mb",
    "storage_count",
)


class AppStatRow(BaseModel):
    """应用统计行（一次拉取中某个应用的快照）"""

    model_config = ConfigDict(extra="ignore")

    row_name: str

    # 读路径
    get_qps: float = 0.0
    multi_get_qps: float = 0.0
    scan_qps: float = 0.0

    # 写路径
    put_qps: float = 0.0
    multi_put_qps: float = 0.0
    remove_qps: float = 0.0
    multi_remove_qps: float = 0.0
    incr_qps: float = 0.0
    check_and_set_qps: float = 0.0
    check_and_mutate_qps: float = 0.0

    # 过期/过滤/异常计数与存储
    recent_expire_count: float = 0.0
    recent_filter_count: float = 0.0
    recent_abnormal_count: float = 0.0
    storage_mb: float = 0.0
    storage_count: float = 0.0

    @property
    def read_qps(self) -> float:
        """读 QPS = get + multi_get + scan"""
        return self.get_qps + self.multi_get_qps + self.scan_qps

    @property
    def write_qps(self) -> float:
        """写 QPS = 所有写路径之和"""
        return (
            self.put_qps
            + self.multi_put_qps
            + self.remove_qps
            + self.multi_remove_qps
            + self.incr_qps
            + self.check_and_set_qps
            + self.check_and_mutate_qps
        )


RowLike = Union[AppStatRow, Mapping[str, Any]]


def to_row(data: RowLike) -> AppStatRow:
    """
    将拉取结果转换为 AppStatRow

    Args:
        data: AppStatRow 实例或字段字典

    Returns:
        AppStatRow 实例

    Raises:
        pydantic.ValidationError: 字段不合法时抛出
    """
    if isinstance(data, AppStatRow):
        return data
    return AppStatRow.model_validate(data)


def build_all_row(rows: Sequence[AppStatRow]) -> AppStatRow:
    """
    计算汇总行 _all_

    按输入顺序从左到右逐字段求和，不修改输入。

    Args:
        rows: 真实应用的统计行（不含 _all_）

    Returns:
        名为 _all_ 的汇总行；rows 为空时各字段均为 0
    """
    totals = {name: 0.0 for name in SUMMED_FIELDS}
    for row in rows:
        for name in SUMMED_FIELDS:
            totals[name] += getattr(row, name)
    return AppStatRow(row_name=ALL_APP_NAME, **totals)


def with_all_row(rows: Sequence[AppStatRow]) -> List[AppStatRow]:
    """返回 rows 的副本，并在末尾追加汇总行"""
    result = list(rows)
    result.append(build_all_row(rows))
    return result
