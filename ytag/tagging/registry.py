"""标签类型注册表

记录每个标签类型的配置：标签文本列、通过多对多关系关联的业务类型、
每个关联类型的默认排序代理，以及不可回收的预置标签。

注册表是一个普通对象，应用启动时创建一次，再注入给
RelatedRecordGatherer / TagReconciler / GarbageCollector。

使用示例:
    registry = TagRegistry()
    registry.configure(Tag, orderings={Post: "title"}, preset_tags=["featured"])

    registry.related_types_for(Tag)   # [Post, Photo]
    registry.default_tag_type()       # Tag
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type

from sqlalchemy import Table, inspect
from sqlalchemy.orm import Session, configure_mappers
from sqlalchemy.sql.schema import Column

from ytag.config import TaggingSettings
from ytag.log import get_logger
from ytag.orm.db_session import resolve_session

from .exceptions import TagConfigurationError, UnconfiguredTagTypeError, UnknownRelatedTypeError
from .tag_model import AbstractTag, register_lowercase_hook
from .tag_store import ensure_tag
from .utils import normalize_tags

logger = get_logger("ytag.tagging.registry")


@dataclass
class RelatedTypeConfig:
    """一个关联类型与标签类型之间的连接信息"""

    model: Type
    link_table: Table
    # 关联表中引用业务记录的列，以及它引用的业务表主键列
    link_column: Column
    target_column: Column
    # 关联表中保存标签文本的列
    tag_link_column: Column
    # 业务模型上指向标签集合的 relationship 名称（没有时为 None）
    link_attr: Optional[str]
    sort_proxy: str

    @property
    def payload_key(self) -> str:
        """请求参数中承载该类型标签数组的键名（即关联表名）"""
        return self.link_table.name


@dataclass
class TagTypeConfig:
    """单个标签类型的注册信息"""

    tag_model: Type
    column: str
    related: Dict[Type, RelatedTypeConfig] = field(default_factory=dict)
    preset_tags: Tuple[str, ...] = ()

    @property
    def tag_attr(self):
        return getattr(self.tag_model, self.column)

    @property
    def related_types(self) -> List[Type]:
        return list(self.related)

    def text_of(self, tag) -> str:
        """取标签对象的标签文本"""
        return getattr(tag, self.column)

    def is_preset(self, text: str) -> bool:
        return text in self.preset_tags

    def related_config(self, related_type: Type) -> RelatedTypeConfig:
        """按类型查找关联配置，支持映射子类"""
        config = self.related.get(related_type)
        if config is not None:
            return config
        for klass in getattr(related_type, "__mro__", ()):
            if klass in self.related:
                return self.related[klass]
        raise UnknownRelatedTypeError(related_type, self.related_types, self.tag_model)

    def sort_proxies(self) -> Dict[Type, str]:
        return {model: cfg.sort_proxy for model, cfg in self.related.items()}


class TagRegistry:
    """标签类型注册表

    Args:
        settings: 标签配置，提供默认列名、默认预置标签和默认排序代理
    """

    def __init__(self, settings: Optional[TaggingSettings] = None):
        self.settings = settings or TaggingSettings()
        self._configs: Dict[Type, TagTypeConfig] = {}

    def configure(
        self,
        tag_model: Type,
        column: Optional[str] = None,
        orderings: Optional[Mapping[Type, str]] = None,
        preset_tags: Optional[Iterable[str]] = None,
        session: Optional[Session] = None,
    ) -> TagTypeConfig:
        """注册（或整体覆盖）一个标签类型

        关联类型取自标签模型上所有带 secondary 的 relationship（TagLinks 创建的反向引用）。

        Args:
            tag_model: 标签模型类
            column: 标签文本列名，默认取 settings.column
            orderings: {关联类型: 排序代理名称}，未列出的类型使用模型的 __tag_sort_proxy__
            preset_tags: 预置标签，默认取 settings.preset_tags；不存在时自动创建
            session: 创建预置标签使用的 session

        Raises:
            TagConfigurationError: 列不存在、排序代理不存在或关联类型缺少标签集合属性
            UnknownRelatedTypeError: orderings 中出现了未关联的类型
        """
        column = column or self.settings.column
        mapper = inspect(tag_model)
        if column not in mapper.columns:
            raise TagConfigurationError(
                f"{tag_model.__name__} 没有列 {column!r}",
                code="UNKNOWN_TAG_COLUMN",
                details={"tag_type": tag_model.__name__, "column": column},
            )

        if getattr(tag_model, "__tag_column__", None) != column:
            tag_model.__tag_column__ = column
        if not issubclass(tag_model, AbstractTag):
            register_lowercase_hook(tag_model)

        # 确保所有 backref 都已生成
        configure_mappers()

        related: Dict[Type, RelatedTypeConfig] = {}
        for rel in mapper.relationships:
            if rel.secondary is None:
                continue
            related_model = rel.mapper.class_
            related[related_model] = self._build_related_config(tag_model, column, related_model, rel.secondary)

        orderings = dict(orderings or {})
        for related_model, proxy in orderings.items():
            if related_model not in related:
                raise UnknownRelatedTypeError(related_model, list(related), tag_model)
            related[related_model].sort_proxy = proxy

        for cfg in related.values():
            if not hasattr(cfg.model, cfg.sort_proxy):
                raise TagConfigurationError(
                    f"{cfg.model.__name__} 没有排序代理 {cfg.sort_proxy!r}",
                    code="UNKNOWN_SORT_PROXY",
                    details={"related_type": cfg.model.__name__, "sort_proxy": cfg.sort_proxy},
                )

        if preset_tags is None:
            preset_tags = self.settings.preset_tags
        config = TagTypeConfig(
            tag_model=tag_model,
            column=column,
            related=related,
            preset_tags=tuple(normalize_tags(preset_tags)),
        )

        if config.preset_tags:
            self._ensure_preset_tags(config, session)

        self._configs[tag_model] = config
        logger.info(
            f"标签类型已配置: {tag_model.__name__}(column={column}), "
            f"关联类型: {[m.__name__ for m in related]}, 预置标签: {list(config.preset_tags)}"
        )
        return config

    def _build_related_config(self, tag_model, column, related_model, secondary: Table) -> RelatedTypeConfig:
        related_table = inspect(related_model).local_table
        tag_table = inspect(tag_model).local_table

        link_column = target_column = tag_link_column = None
        for col in secondary.c:
            for fk in col.foreign_keys:
                if fk.column.table is related_table:
                    link_column, target_column = col, fk.column
                elif fk.column.table is tag_table:
                    tag_link_column = col

        if link_column is None or tag_link_column is None:
            raise TagConfigurationError(
                f"关联表 {secondary.name} 缺少指向 {related_table.name} 或 {tag_table.name} 的外键",
                code="INVALID_LINK_TABLE",
                details={"link_table": secondary.name},
            )

        link_attr = None
        for rel in inspect(related_model).relationships:
            if rel.secondary is secondary and rel.mapper.class_ is tag_model:
                link_attr = rel.key
                break

        sort_proxy = getattr(related_model, "__tag_sort_proxy__", None) or self.settings.default_sort_proxy

        return RelatedTypeConfig(
            model=related_model,
            link_table=secondary,
            link_column=link_column,
            target_column=target_column,
            tag_link_column=tag_link_column,
            link_attr=link_attr,
            sort_proxy=sort_proxy,
        )

    def _ensure_preset_tags(self, config: TagTypeConfig, session: Optional[Session]) -> None:
        session = resolve_session(config.tag_model, session)
        for text in config.preset_tags:
            ensure_tag(session, config, text)
        session.flush()

    # ==================== 查询 ====================

    def is_configured_tag_type(self, tag_model: Type) -> bool:
        return tag_model in self._configs

    def get_config(self, tag_model: Optional[Type] = None) -> TagTypeConfig:
        """获取标签类型配置，tag_model 为空时返回默认标签类型的配置

        Raises:
            UnconfiguredTagTypeError: 标签类型未配置
        """
        if tag_model is None:
            tag_model = self.default_tag_type()
        try:
            return self._configs[tag_model]
        except KeyError:
            raise UnconfiguredTagTypeError(tag_model) from None

    def related_types_for(self, tag_model: Type) -> List[Type]:
        """标签类型的所有关联类型（按关系声明顺序）"""
        return self.get_config(tag_model).related_types

    def default_tag_type(self) -> Type:
        """第一个注册的标签类型

        Raises:
            UnconfiguredTagTypeError: 尚未注册任何标签类型
        """
        for tag_model in self._configs:
            return tag_model
        raise UnconfiguredTagTypeError()

    def config_for_related(self, related_type: Type, tag_model: Optional[Type] = None) -> TagTypeConfig:
        """查找管理某个业务类型的标签类型配置

        Raises:
            UnknownRelatedTypeError: 没有任何已注册标签类型关联到该业务类型
        """
        if tag_model is not None:
            config = self.get_config(tag_model)
            config.related_config(related_type)
            return config

        for config in self._configs.values():
            try:
                config.related_config(related_type)
            except UnknownRelatedTypeError:
                continue
            return config

        valid: List[Type] = []
        for config in self._configs.values():
            valid.extend(config.related_types)
        raise UnknownRelatedTypeError(related_type, valid)

    @property
    def tag_types(self) -> Sequence[Type]:
        return list(self._configs)

    def clear(self) -> None:
        self._configs.clear()
