"""配置模块

提供配置管理功能：
- AppSettings: 应用基础配置，聚合数据库、日志、标签配置
- 子配置类: DatabaseSettings, LoggingSettings, TaggingSettings
- ConfigLoader / ConfigManager: YAML 配置加载

快速开始:
    from ytag.config import AppSettings, load_yaml_config

    settings = load_yaml_config("config/settings.yaml", AppSettings)
"""

from .settings import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    TaggingSettings,
)

from .loader import (
    ConfigLoader,
    ConfigManager,
    load_yaml_config,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "TaggingSettings",
    "ConfigLoader",
    "ConfigManager",
    "load_yaml_config",
]
