"""
YTag - SQLAlchemy 通用标签库

提供共享标签表 + 每个业务表一张关联表的多对多标签方案：
- 标签同步（创建缺失标签、移除关联、回收孤立标签，预置标签永不删除）
- 跨类型关联记录检索（合并去重、自然排序、随机、分页截取）
- 孤立标签全量回收
"""

from .version import __version__, __author__, __description__

from .orm import (
    Base,
    CoreModel,
    BaseModel,
    TagLinks,
    init_database,
    db_session_scope,
    get_db,
)

from .tagging import (
    AbstractTag,
    TaggableMixin,
    TagRegistry,
    RelatedRecordGatherer,
    TagReconciler,
    GarbageCollector,
    CrossTypeComparator,
    TaggingError,
    TagConfigurationError,
    UnconfiguredTagTypeError,
    UnknownRelatedTypeError,
)

from .log import get_logger, setup_logger, setup_root_logger

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "Base",
    "CoreModel",
    "BaseModel",
    "TagLinks",
    "init_database",
    "db_session_scope",
    "get_db",
    "AbstractTag",
    "TaggableMixin",
    "TagRegistry",
    "RelatedRecordGatherer",
    "TagReconciler",
    "GarbageCollector",
    "CrossTypeComparator",
    "TaggingError",
    "TagConfigurationError",
    "UnconfiguredTagTypeError",
    "UnknownRelatedTypeError",
    "get_logger",
    "setup_logger",
    "setup_root_logger",
]
