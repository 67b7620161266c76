"""ORM 模块

使用示例:
    from ytag.orm import Base, CoreModel, BaseModel, TagLinks, init_database
"""

from .core_model import Base, CoreModel, BaseModel
from .fields import TagLinks, build_tag_link_table, tag_column_of
from .db_session import (
    db_manager,
    init_database,
    get_engine,
    get_db,
    db_session_scope,
    enable_sqlite_foreign_keys,
    resolve_session,
)
from .utils import to_snake_case, pluralize, singularize

__all__ = [
    "Base",
    "CoreModel",
    "BaseModel",
    "TagLinks",
    "build_tag_link_table",
    "tag_column_of",
    "db_manager",
    "init_database",
    "get_engine",
    "get_db",
    "db_session_scope",
    "enable_sqlite_foreign_keys",
    "resolve_session",
    "to_snake_case",
    "pluralize",
    "singularize",
]
