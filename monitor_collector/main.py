"""
嵌入入口

宿主进程提供拉取函数，在自己的事件循环中运行采集器：

    registry = MetricsRegistry()
    task = asyncio.create_task(run_collector(fetch_rows, registry=registry))
    ...
    task.cancel()
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .collector import FetchRows, InfoCollector
from .config import AppConfig, LoggingConfig, get_config
from .registry import MetricsRegistry

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: Optional[LoggingConfig] = None):
    """配置日志"""
    if config is None:
        config = get_config().logging

    level = getattr(logging, config.level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # 如果配置了文件日志
    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)


async def run_collector(
    fetch_rows: FetchRows,
    config: Optional[AppConfig] = None,
    registry: Optional[MetricsRegistry] = None,
) -> MetricsRegistry:
    """
    运行采集器直到被取消

    取消时等待进行中的采集结束后返回。

    Returns:
        使用的 MetricsRegistry
    """
    logger = logging.getLogger(__name__)

    if config is None:
        config = get_config()
    if registry is None:
        registry = MetricsRegistry()

    collector = InfoCollector.from_config(fetch_rows, config.collector, registry)
    logger.info(
        f"Starting app stat collector (cluster={config.collector.cluster}, "
        f"interval={config.collector.app_stat_interval_seconds}s)"
    )
    collector.start()
    try:
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("Collector cancelled, shutting down...")
    finally:
        await collector.stop()
    return registry
