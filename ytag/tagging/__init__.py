"""标签系统模块

导出:
    - AbstractTag: 标签抽象模型
    - TaggableMixin: 被标记模型的 Mixin
    - TagRegistry: 标签类型注册表
    - RelatedRecordGatherer: 跨类型关联记录检索
    - TagReconciler: 标签同步
    - GarbageCollector: 孤立标签回收
    - CrossTypeComparator: 跨类型自然排序比较器

使用示例:
    from ytag.orm import BaseModel, CoreModel, TagLinks
    from ytag.tagging import (
        AbstractTag, TaggableMixin, TagRegistry,
        RelatedRecordGatherer, TagReconciler, GarbageCollector,
    )

    # 1. 定义标签模型和业务模型
    class Tag(CoreModel, AbstractTag):
        __tablename__ = "tags"

    class Post(BaseModel, TaggableMixin):
        __tablename__ = "posts"
        __tag_sort_proxy__ = "title"
        title: Mapped[str] = mapped_column(String(200))
        tags = TagLinks(Tag)

    # 2. 启动时注册一次
    registry = TagRegistry()
    registry.configure(Tag, preset_tags=["featured"])

    # 3. 使用
    TagReconciler(registry).reconcile(post, ["Python", "ORM"])
    RelatedRecordGatherer(registry).gather("python", limit=10)
    GarbageCollector(registry).sweep(Tag)
"""

from .exceptions import (
    TaggingError,
    TagConfigurationError,
    UnconfiguredTagTypeError,
    UnknownRelatedTypeError,
)
from .utils import normalize_tag, normalize_tags, split_tags
from .tag_model import AbstractTag, lowercase_tag_listener, register_lowercase_hook
from .taggable_mixin import TaggableMixin
from .registry import TagRegistry, TagTypeConfig, RelatedTypeConfig
from .comparator import CrossTypeComparator, SortDirection, natural_key, natcasecmp
from .gatherer import RelatedRecordGatherer
from .reconciler import TagReconciler, read_tag_payload
from .collector import GarbageCollector

__all__ = [
    "TaggingError",
    "TagConfigurationError",
    "UnconfiguredTagTypeError",
    "UnknownRelatedTypeError",
    "normalize_tag",
    "normalize_tags",
    "split_tags",
    "AbstractTag",
    "lowercase_tag_listener",
    "register_lowercase_hook",
    "TaggableMixin",
    "TagRegistry",
    "TagTypeConfig",
    "RelatedTypeConfig",
    "CrossTypeComparator",
    "SortDirection",
    "natural_key",
    "natcasecmp",
    "RelatedRecordGatherer",
    "TagReconciler",
    "read_tag_payload",
    "GarbageCollector",
]
