"""标签同步

把一条业务记录的标签集合调整为调用方给出的期望集合：
缺失的标签先创建，不再需要的关联被移除，移除后没有任何关联的非预置标签被删除。

使用示例:
    reconciler = TagReconciler(registry)

    reconciler.reconcile(post, ["Python", " ORM ", "python"])   # -> ["python", "orm"]

    # 表单提交：键名为关联表名，如 posts_tags
    reconciler.populate(post, {"posts_tags": ["python", "sqlalchemy"]})
"""

from typing import Iterable, List, Mapping, Optional, Type

from sqlalchemy.orm import Session

from ytag.log import get_logger
from ytag.orm.db_session import resolve_session

from .exceptions import TagConfigurationError
from .gatherer import RelatedRecordGatherer
from .registry import RelatedTypeConfig, TagRegistry, TagTypeConfig
from .tag_store import delete_tag, ensure_tag
from .utils import normalize_tags

logger = get_logger("ytag.tagging.reconciler")


def read_tag_payload(payload: Mapping, key: str) -> List:
    """从请求参数中读取标签数组

    支持 ``key`` 与 PHP/jQuery 风格的 ``key[]`` 两种键名；
    带 getlist() 的多值表单（如 starlette 的 FormData）按多值读取。
    单个字符串视为只有一个元素的数组。
    """
    values: List = []
    for name in (key, f"{key}[]"):
        getlist = getattr(payload, "getlist", None)
        if getlist is not None:
            values.extend(getlist(name))
            continue
        if name not in payload:
            continue
        value = payload[name]
        if value is None:
            continue
        if isinstance(value, (str, bytes)):
            values.append(value)
        else:
            values.extend(value)
    return values


class TagReconciler:
    """标签同步器

    Args:
        registry: 标签类型注册表
        session: 使用的 session，默认取标签模型 query 属性绑定的 session
        gatherer: 统计标签关联数使用的检索器，默认按相同 registry / session 创建
    """

    def __init__(
        self,
        registry: TagRegistry,
        session: Optional[Session] = None,
        gatherer: Optional[RelatedRecordGatherer] = None,
    ):
        self.registry = registry
        self._session = session
        self.gatherer = gatherer or RelatedRecordGatherer(registry, session=session)

    def reconcile(self, entity, desired_tags: Iterable, tag_type: Optional[Type] = None) -> List[str]:
        """把 entity 的标签调整为 desired_tags

        Args:
            entity: 被标记的业务记录（新建或已持久化）
            desired_tags: 期望的标签文本；会去空白、HTML 解码、转小写、去重
            tag_type: 标签类型，默认查找管理 entity 类型的标签类型

        Returns:
            规范化后的期望标签文本列表

        Raises:
            UnknownRelatedTypeError: entity 的类型没有关联到任何已注册的标签类型
            TagConfigurationError: entity 的类型上没有指向标签的 relationship
        """
        config = self.registry.config_for_related(type(entity), tag_type)
        related_cfg = config.related_config(type(entity))
        link_attr = self._link_attr(related_cfg)
        session = resolve_session(config.tag_model, self._session)

        desired = normalize_tags(desired_tags)
        tags = [ensure_tag(session, config, text) for text in desired]

        if entity not in session:
            session.add(entity)

        previous = [config.text_of(tag) for tag in getattr(entity, link_attr)]
        desired_set = set(desired)
        removed = [text for text in previous if text not in desired_set]

        setattr(entity, link_attr, tags)
        session.flush()

        for text in removed:
            self._collect(session, config, text)

        logger.debug(
            f"{type(entity).__name__} 标签同步完成: {previous} -> {desired}"
        )
        return desired

    def populate(self, entity, payload: Mapping, tag_type: Optional[Type] = None) -> List[str]:
        """从请求参数同步标签，参数键名为关联表名（如 posts_tags）"""
        config = self.registry.config_for_related(type(entity), tag_type)
        related_cfg = config.related_config(type(entity))
        values = read_tag_payload(payload, related_cfg.payload_key)
        return self.reconcile(entity, values, tag_type=config.tag_model)

    # ==================== 内部方法 ====================

    def _collect(self, session: Session, config: TagTypeConfig, text: str) -> None:
        """删除已经没有任何关联的非预置标签"""
        if config.is_preset(text):
            logger.debug(f"预置标签 {text!r} 不回收")
            return

        links = self.gatherer.count_links(text, config.tag_model)
        if links:
            logger.debug(f"标签 {text!r} 仍有 {links} 条关联，保留")
            return

        delete_tag(session, config, text)

    @staticmethod
    def _link_attr(related_cfg: RelatedTypeConfig) -> str:
        if related_cfg.link_attr is None:
            raise TagConfigurationError(
                f"{related_cfg.model.__name__} 上没有指向标签的 relationship",
                code="MISSING_LINK_ATTRIBUTE",
                details={"related_type": related_cfg.model.__name__},
            )
        return related_cfg.link_attr
