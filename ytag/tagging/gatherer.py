"""关联记录检索

给定一个或多个标签，从多个互不相关的业务表中取出带有任一标签的记录，
合并去重后按各类型的排序代理统一排序（或随机打乱），再截取前 limit 条。

使用示例:
    gatherer = RelatedRecordGatherer(registry)

    gatherer.gather("python, orm", limit=10)
    gatherer.gather(["python"], orderings={Post: "title"}, direction="desc")
    gatherer.gather(tag, orderings=[Photo], random=True, limit=3)
"""

import random as _random
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Type, Union

from sqlalchemy import func, inspect, select
from sqlalchemy.orm import Session

from ytag.log import get_logger
from ytag.orm.db_session import resolve_session

from .comparator import CrossTypeComparator, SortDirection
from .registry import RelatedTypeConfig, TagRegistry, TagTypeConfig
from .utils import normalize_tags, split_tags

logger = get_logger("ytag.tagging.gatherer")

OrderingsArg = Union[None, Mapping[Type, str], Sequence[Type]]


class RelatedRecordGatherer:
    """跨类型关联记录检索器

    Args:
        registry: 标签类型注册表
        session: 使用的 session，默认取标签模型 query 属性绑定的 session
        rng: 随机模式使用的随机数生成器，便于测试时固定种子
    """

    def __init__(
        self,
        registry: TagRegistry,
        session: Optional[Session] = None,
        rng: Optional[_random.Random] = None,
    ):
        self.registry = registry
        self._session = session
        self._rng = rng or _random.Random()

    def _get_session(self, config: TagTypeConfig) -> Session:
        return resolve_session(config.tag_model, self._session)

    # ==================== 检索 ====================

    def gather(
        self,
        tags,
        limit: Optional[int] = None,
        orderings: OrderingsArg = None,
        direction: Union[str, SortDirection] = "asc",
        tag_type: Optional[Type] = None,
        exclude=None,
        random: bool = False,
    ) -> List:
        """检索带有任一标签的记录

        Args:
            tags: 单个字符串（按逗号拆分）、标签对象、或二者混合的可迭代对象
            limit: 最多返回的条数，None 或 0 表示不限制
            orderings: {类型: 排序代理}、类型列表（使用注册的默认代理）或 None（全部关联类型）
            direction: 排序方向 asc / desc，随机模式下忽略
            tag_type: 标签类型，默认取注册表中第一个标签类型
            exclude: 需要从结果中排除的记录
            random: 是否随机打乱（打乱后仍截取 limit 条）

        Returns:
            记录列表，每条记录最多出现一次

        Raises:
            UnknownRelatedTypeError: orderings 中出现了未关联到该标签类型的类型
            ValueError: limit 为负数或 direction 非法
        """
        if limit is not None and limit < 0:
            raise ValueError(f"limit 不能为负数: {limit}")
        direction = SortDirection.parse(direction)

        config = self.registry.get_config(tag_type)
        proxies = self._resolve_orderings(config, orderings)
        texts = self._normalize_tags(config, tags)
        if not texts or not proxies:
            return []

        session = self._get_session(config)

        records = []
        seen = set()
        exclude_key = self._identity(exclude) if exclude is not None else None
        for related_type in proxies:
            related_cfg = config.related_config(related_type)
            for record in self._query_related(session, related_cfg, texts):
                key = self._identity(record)
                if key in seen or key == exclude_key:
                    continue
                seen.add(key)
                records.append(record)

        if random:
            self._rng.shuffle(records)
        else:
            records = CrossTypeComparator(proxies, direction).sort(records)

        if limit:
            records = records[:limit]

        logger.debug(
            f"检索标签 {texts}: 类型 {[t.__name__ for t in proxies]}, "
            f"limit={limit}, random={random}, 返回 {len(records)} 条"
        )
        return records

    def count_links(self, text: str, tag_type: Optional[Type] = None) -> int:
        """统计一个标签在所有关联类型中的关联记录数"""
        config = self.registry.get_config(tag_type)
        session = self._get_session(config)
        total = 0
        for related_cfg in config.related.values():
            stmt = (
                select(func.count())
                .select_from(related_cfg.link_table)
                .where(related_cfg.tag_link_column == text)
            )
            total += session.scalar(stmt) or 0
        return total

    # ==================== 内部方法 ====================

    def _normalize_tags(self, config: TagTypeConfig, tags) -> List[str]:
        if tags is None:
            return []
        if isinstance(tags, str):
            return normalize_tags(split_tags(tags))
        if isinstance(tags, config.tag_model):
            return normalize_tags([config.text_of(tags)])

        values = []
        for item in tags:
            if isinstance(item, config.tag_model):
                values.append(config.text_of(item))
            else:
                values.append(item)
        return normalize_tags(values)

    def _resolve_orderings(self, config: TagTypeConfig, orderings: OrderingsArg) -> Dict[Type, str]:
        if not orderings:
            return config.sort_proxies()

        if isinstance(orderings, Mapping):
            items = orderings.items()
        else:
            items = ((related_type, None) for related_type in orderings)

        proxies: Dict[Type, str] = {}
        for related_type, proxy in items:
            related_cfg = config.related_config(related_type)
            proxies[related_cfg.model] = proxy or related_cfg.sort_proxy
        return proxies

    def _query_related(
        self,
        session: Session,
        related_cfg: RelatedTypeConfig,
        texts: Iterable[str],
    ) -> List:
        model = related_cfg.model
        linked_ids = select(related_cfg.link_column).where(related_cfg.tag_link_column.in_(list(texts)))
        query = session.query(model).filter(related_cfg.target_column.in_(linked_ids))

        # 取回该类型全部匹配记录，limit 只作用于合并后的自然排序结果
        return query.order_by(related_cfg.target_column.asc()).all()

    @staticmethod
    def _identity(record):
        state = inspect(record)
        return (state.mapper.class_, state.identity)
