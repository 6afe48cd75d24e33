"""
单元测试：配置加载
"""

import sys
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

# 添加项目路径到 sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from monitor_collector import config as config_module
from monitor_collector.config import AppConfig, CollectorConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MONITOR_COLLECTOR_CONFIG", "MONITOR_COLLECTOR_CLUSTER", "MONITOR_COLLECTOR_INTERVAL"):
        monkeypatch.delenv(name, raising=False)
    config_module.reset_config()
    yield
    config_module.reset_config()


def write_config(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestCollectorConfig:
    """采集配置测试"""

    def test_defaults(self):
        config = CollectorConfig(cluster="onebox")

        assert config.app_stat_interval_seconds == 10
        assert config.initial_delay_seconds is None
        assert config.metric_prefix == "app.pegasus"

    def test_missing_cluster(self):
        """测试：缺少集群名时校验失败"""
        with pytest.raises(ValidationError):
            CollectorConfig()

    def test_blank_cluster(self):
        """测试：集群名为空白时校验失败"""
        with pytest.raises(ValidationError):
            CollectorConfig(cluster="  ")

    def test_cluster_stripped(self):
        assert CollectorConfig(cluster=" c1 ").cluster == "c1"

    def test_interval_minimum(self):
        """测试：采集周期不小于 1 秒"""
        with pytest.raises(ValidationError):
            CollectorConfig(cluster="onebox", app_stat_interval_seconds=0)

    def test_initial_delay_ceiling(self):
        """测试：首次延迟不超过 60 秒"""
        assert CollectorConfig(cluster="onebox", initial_delay_seconds=60).initial_delay_seconds == 60
        with pytest.raises(ValidationError):
            CollectorConfig(cluster="onebox", initial_delay_seconds=61)


class TestLoadConfig:
    """配置文件加载测试"""

    def test_load_yaml(self, tmp_path):
        path = write_config(
            tmp_path / "config.yaml",
            {
                "collector": {"cluster": "c1", "app_stat_interval_seconds": 30},
                "logging": {"level": "DEBUG"},
            },
        )

        config = load_config(str(path))

        assert isinstance(config, AppConfig)
        assert config.collector.cluster == "c1"
        assert config.collector.app_stat_interval_seconds == 30
        assert config.logging.level == "DEBUG"
        assert config.logging.file is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_missing_cluster_is_fatal(self, tmp_path):
        """测试：配置文件中没有集群名时加载失败"""
        path = write_config(tmp_path / "config.yaml", {"collector": {"app_stat_interval_seconds": 5}})

        with pytest.raises(ValidationError):
            load_config(str(path))

    def test_empty_file_is_fatal(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(ValidationError):
            load_config(str(path))

    def test_path_from_env(self, tmp_path, monkeypatch):
        path = write_config(tmp_path / "custom.yaml", {"collector": {"cluster": "from-env-path"}})
        monkeypatch.setenv("MONITOR_COLLECTOR_CONFIG", str(path))

        assert load_config().collector.cluster == "from-env-path"

    def test_env_overrides(self, tmp_path, monkeypatch):
        """测试：环境变量覆盖文件中的值"""
        path = write_config(
            tmp_path / "config.yaml",
            {"collector": {"cluster": "c1", "app_stat_interval_seconds": 30}},
        )
        monkeypatch.setenv("MONITOR_COLLECTOR_CLUSTER", "c2")
        monkeypatch.setenv("MONITOR_COLLECTOR_INTERVAL", "15")

        config = load_config(str(path))

        assert config.collector.cluster == "c2"
        assert config.collector.app_stat_interval_seconds == 15

    def test_env_cluster_fills_missing(self, tmp_path, monkeypatch):
        path = write_config(tmp_path / "config.yaml", {"logging": {"level": "INFO"}})
        monkeypatch.setenv("MONITOR_COLLECTOR_CLUSTER", "c3")

        assert load_config(str(path)).collector.cluster == "c3"

    def test_get_config_cached(self, tmp_path, monkeypatch):
        path = write_config(tmp_path / "config.yaml", {"collector": {"cluster": "c1"}})
        monkeypatch.setenv("MONITOR_COLLECTOR_CONFIG", str(path))

        first = config_module.get_config()
        second = config_module.get_config()
        assert first is second

        config_module.reset_config()
        assert config_module.get_config() is not first

    def test_example_config_valid(self):
        """测试：示例配置可正常加载"""
        example = Path(__file__).parent.parent / "config.example.yaml"
        config = load_config(str(example))

        assert config.collector.cluster == "onebox"
        assert config.collector.initial_delay_seconds is None


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
