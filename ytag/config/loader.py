"""配置加载器模块

从 YAML 文件读取配置，并转换为 pydantic-settings 配置对象。
YAML 中没有出现的字段仍由环境变量（YTAG_* 前缀）和默认值补齐。

使用示例:
    from ytag.config import AppSettings, TaggingSettings, load_yaml_config

    settings = load_yaml_config("config/settings.yaml", AppSettings)
    tagging = load_yaml_config("config/settings.yaml", TaggingSettings, section="tagging")
    registry = TagRegistry(settings=tagging)
"""

import copy
import os
from typing import Any, Dict, List, Optional, Type, TypeVar

import yaml


T = TypeVar("T")


def _resolve_path(config_path: str, base_dir: Optional[str] = None) -> str:
    if os.path.isabs(config_path):
        return config_path
    return os.path.abspath(os.path.join(base_dir or os.getcwd(), config_path))


def _select_section(config: Dict[str, Any], section: Optional[str]) -> Dict[str, Any]:
    """按点号路径取出配置中的一段，如 "tagging" 或 "app.tagging" """
    if not section:
        return config
    node: Any = config
    for part in section.split("."):
        if not isinstance(node, dict):
            return {}
        node = node.get(part) or {}
    return node if isinstance(node, dict) else {}


class ConfigLoader:
    """YAML 配置读取（按绝对路径缓存）

    load() 每次返回缓存的深拷贝，调用方修改返回值不会影响后续读取。

    使用示例:
        preset = ConfigLoader.load("config/settings.yaml").get("tagging", {}).get("preset_tags", [])

        ConfigLoader.reload("config/settings.yaml")   # 文件修改后重新读取
        ConfigLoader.clear_cache()
    """

    _cache: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def load(
        cls,
        config_path: str,
        base_dir: Optional[str] = None,
        use_cache: bool = True
    ) -> Dict[str, Any]:
        """读取 YAML 文件为字典

        Args:
            config_path: 配置文件路径，相对路径基于 base_dir（默认当前目录）
            base_dir: 解析相对路径的目录
            use_cache: 是否读写缓存

        Raises:
            FileNotFoundError: 配置文件不存在
            yaml.YAMLError: YAML 格式错误
        """
        path = _resolve_path(config_path, base_dir)

        cached = cls._cache.get(path) if use_cache else None
        if cached is None:
            if not os.path.isfile(path):
                raise FileNotFoundError(f"配置文件不存在: {path}")
            with open(path, encoding="utf-8") as f:
                cached = yaml.safe_load(f) or {}
            if use_cache:
                cls._cache[path] = cached

        return copy.deepcopy(cached)

    @classmethod
    def reload(cls, config_path: str, base_dir: Optional[str] = None) -> Dict[str, Any]:
        """丢弃缓存后重新读取"""
        cls._cache.pop(_resolve_path(config_path, base_dir), None)
        return cls.load(config_path, base_dir)

    @classmethod
    def clear_cache(cls):
        cls._cache.clear()

    @classmethod
    def get_cached_paths(cls) -> List[str]:
        return list(cls._cache)


def load_yaml_config(
    config_path: str,
    settings_class: Type[T],
    base_dir: Optional[str] = None,
    section: Optional[str] = None,
    **overrides
) -> T:
    """读取 YAML 并创建配置对象

    Args:
        config_path: 配置文件路径
        settings_class: pydantic-settings 配置类
        base_dir: 解析相对路径的目录
        section: 只使用 YAML 中的某一段（点号路径），如 "tagging"
        **overrides: 覆盖顶层配置项（整体替换，不做合并）

    使用示例:
        settings = load_yaml_config(
            "config/settings.yaml",
            AppSettings,
            tagging={"preset_tags": ["featured"]},
        )
    """
    config = _select_section(ConfigLoader.load(config_path, base_dir), section)
    config.update(overrides)
    return settings_class(**config)


class ConfigManager:
    """分层配置管理

    依次加载主配置和环境配置，后加载的文件按键深度合并到已有配置上，
    最后可以整体或按段构建配置对象。

    使用示例:
        manager = ConfigManager(base_dir="config")
        manager.load("settings.yaml")
        manager.load("settings.dev.yaml", merge=True)

        manager.get("tagging.column", "tag")
        registry = TagRegistry(settings=manager.build(TaggingSettings, section="tagging"))
    """

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = base_dir or os.getcwd()
        self._config: Dict[str, Any] = {}

    def load(self, config_path: str, merge: bool = False) -> Dict[str, Any]:
        loaded = ConfigLoader.load(config_path, self.base_dir)
        self._config = _merge(self._config, loaded) if merge else loaded
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """按点号路径取值，如 "tagging.preset_tags" """
        parent, _, name = key.rpartition(".")
        node = _select_section(self._config, parent) if parent else self._config
        return node.get(name, default)

    def set(self, key: str, value: Any):
        node = self._config
        *parents, name = key.split(".")
        for part in parents:
            node = node.setdefault(part, {})
        node[name] = value

    def build(self, settings_class: Type[T], section: Optional[str] = None) -> T:
        """用当前（合并后的）配置创建配置对象"""
        return settings_class(**copy.deepcopy(_select_section(self._config, section)))

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)


def _merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """把 update 深度合并进 base（原地修改并返回 base）"""
    for key, value in update.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _merge(current, value)
        else:
            base[key] = value
    return base
