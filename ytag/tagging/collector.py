"""标签回收

全量扫描一个标签类型的所有标签，删除没有任何关联的非预置标签。

标签同步已经会就地清理被移除的标签，这里处理同步之外产生的孤立标签，
例如批量删除业务记录时由数据库级联删掉的关联。
"""

from typing import Optional, Type

from sqlalchemy.orm import Session

from ytag.log import get_logger
from ytag.orm.db_session import resolve_session

from .gatherer import RelatedRecordGatherer
from .registry import TagRegistry
from .tag_store import delete_tag

logger = get_logger("ytag.tagging.collector")


class GarbageCollector:
    """孤立标签回收器

    使用示例:
        collector = GarbageCollector(registry)
        collector.sweep(Tag)
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

    def sweep(self, tag_type: Optional[Type] = None) -> None:
        """删除 tag_type 下所有没有关联的非预置标签

        Args:
            tag_type: 标签类型，默认取注册表中第一个标签类型
        """
        config = self.registry.get_config(tag_type)
        session = resolve_session(config.tag_model, self._session)

        texts = [
            text for (text,) in session.query(config.tag_attr).order_by(config.tag_attr).all()
        ]

        deleted = 0
        for text in texts:
            if config.is_preset(text):
                continue
            if self.gatherer.count_links(text, config.tag_model) == 0:
                if delete_tag(session, config, text):
                    deleted += 1

        logger.info(f"{config.tag_model.__name__} 标签回收完成: 扫描 {len(texts)} 个，删除 {deleted} 个")
