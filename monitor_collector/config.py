"""
配置加载模块

从 config.yaml 加载配置，支持 Pydantic 验证和环境变量覆盖。
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .counters import DEFAULT_METRIC_PREFIX

DEFAULT_CONFIG_PATH = "config.yaml"


class CollectorConfig(BaseModel):
    """采集配置"""
    cluster: str = Field(..., description="集群名称（仅用于日志和标识）")
    app_stat_interval_seconds: int = Field(default=10, ge=1, description="采集周期（秒）")
    initial_delay_seconds: Optional[int] = Field(
        default=None, ge=0, le=60, description="首次采集延迟（秒），为空时等于一个周期"
    )
    metric_prefix: str = Field(default=DEFAULT_METRIC_PREFIX, min_length=1)

    @field_validator("cluster")
    @classmethod
    def _cluster_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("cluster name must not be empty")
        return value


class LoggingConfig(BaseModel):
    """日志配置"""
    level: str = "INFO"
    file: Optional[str] = None


class AppConfig(BaseModel):
    """应用配置（完整配置）"""
    collector: CollectorConfig
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class EnvOverrides(BaseSettings):
    """环境变量覆盖项（MONITOR_COLLECTOR_*）"""

    model_config = SettingsConfigDict(env_prefix="MONITOR_COLLECTOR_", extra="ignore")

    config: Optional[str] = None
    cluster: Optional[str] = None
    interval: Optional[int] = None


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    加载配置文件

    优先级：
    1. 参数指定的路径
    2. 环境变量 MONITOR_COLLECTOR_CONFIG
    3. 默认路径 config.yaml

    环境变量 MONITOR_COLLECTOR_CLUSTER / MONITOR_COLLECTOR_INTERVAL 覆盖文件中的值。

    Raises:
        FileNotFoundError: 配置文件不存在
        pydantic.ValidationError: 配置不合法（如集群名为空）
    """
    overrides = EnvOverrides()
    if config_path is None:
        config_path = overrides.config or DEFAULT_CONFIG_PATH

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_file, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f) or {}

    collector = raw_config.setdefault("collector", {}) or {}
    raw_config["collector"] = collector
    if overrides.cluster is not None:
        collector["cluster"] = overrides.cluster
    if overrides.interval is not None:
        collector["app_stat_interval_seconds"] = overrides.interval

    return AppConfig(**raw_config)


# 全局配置实例（延迟加载）
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """获取全局配置实例（单例模式）"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config():
    """重置配置（主要用于测试）"""
    global _config
    _config = None
