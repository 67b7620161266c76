"""
ORM基础模型

提供声明基类、自动表名、常用 CRUD 方法，并在子类创建时处理 TagLinks 字段
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, List, Optional, TYPE_CHECKING

from sqlalchemy import DateTime, Integer, func, inspect
from sqlalchemy.orm import Mapped, Query, Session, declarative_base, declared_attr, mapped_column

if TYPE_CHECKING:
    from typing_extensions import Self

from .utils import to_snake_case


# 声明基类
Base = declarative_base()


class CoreModel(Base):
    """ORM核心模型类

    不定义主键，标签模型（以标签文本为主键）和被标记的业务模型都从这里派生。

    提供功能：
    - 自动表名生成（驼峰转下划线）
    - 常用 CRUD 操作方法
    - 数据序列化方法
    - TagLinks 字段处理（自动创建 <表名>_tags 关联表）

    使用示例:
        from ytag.orm import BaseModel, TagLinks
        from ytag.tagging import AbstractTag, TaggableMixin

        class Tag(CoreModel, AbstractTag):
            __tablename__ = "tags"

        class Post(BaseModel, TaggableMixin):
            __tablename__ = "posts"
            title: Mapped[str] = mapped_column(String(200))
            tags = TagLinks(Tag)
    """
    __abstract__ = True

    __allow_unmapped__ = True

    def __init_subclass__(cls, **kwargs):
        """子类初始化钩子

        在 SQLAlchemy 完成映射之前，把 TagLinks 字段替换为关联表 + relationship。
        """
        super().__init_subclass__(**kwargs)

        if cls.__dict__.get('__abstract__', False):
            return

        from .fields import process_tag_link_fields, _TagLinksConfig

        for klass in cls.__mro__:
            if klass is object:
                continue
            if klass is not cls and '__tablename__' in klass.__dict__:
                continue
            if any(isinstance(v, _TagLinksConfig) for v in vars(klass).values()):
                process_tag_link_fields(cls)
                break

    # query 属性由 init_database() 或测试夹具通过 scoped_session.query_property() 设置
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """驼峰命名转下划线"""
        name = cls.__name__
        if '_' in name:
            raise ValueError(f'{name}字符中包含下划线，无法转换')
        return to_snake_case(name)

    def __repr__(self):
        mapper = inspect(self.__class__)
        keys = ", ".join(
            f"{col.key}={getattr(self, mapper.get_property_by_column(col).key)!r}"
            for col in mapper.primary_key
        )
        return f"<{self.__class__.__name__} {keys}>"

    @property
    def session(self) -> Session:
        """获取当前 session

        对象已在某个 session 中时直接返回该 session，否则按 query 属性 / 全局 session 查找
        """
        current = inspect(self).session
        if current is not None:
            return current
        return self._cls_session()

    @classmethod
    def _cls_session(cls) -> Session:
        from .db_session import resolve_session
        return resolve_session(cls)

    # ==================== CRUD 操作方法 ====================

    def save(self, commit: bool = False) -> Self:
        """保存对象（新增或更新）

        Args:
            commit: 是否立即提交，False 时只 flush 不提交

        Returns:
            self: 返回自身，支持链式调用
        """
        session = self.session
        session.add(self)
        if commit:
            session.commit()
        else:
            session.flush()
        return self

    def delete(self, commit: bool = False):
        """删除对象"""
        session = self.session
        session.delete(self)
        if commit:
            session.commit()
        else:
            session.flush()

    @classmethod
    def get(cls, pk) -> Optional[Self]:
        """根据主键获取对象，不存在返回None"""
        return cls._cls_session().get(cls, pk)

    @classmethod
    def get_all(cls) -> List[Self]:
        """获取所有记录"""
        return cls._cls_session().query(cls).all()

    # ==================== 序列化方法 ====================

    def to_dict(self, exclude: set = None) -> dict:
        """转换为字典

        Args:
            exclude: 需要排除的字段集合
        """
        exclude = exclude or set()
        return {
            c.key: getattr(self, c.key)
            for c in inspect(self).mapper.column_attrs
            if c.key not in exclude
        }


class BaseModel(CoreModel):
    """带自增整数主键和时间戳的业务模型基类

    关联表通过 <表名>.id 引用被标记的记录，因此被标记的模型应继承此类。
    """
    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        comment="创建时间"
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
        onupdate=func.now(),
        comment="更新时间"
    )
