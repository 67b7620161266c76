"""
关系字段定义模块

提供声明式的标签关联字段 TagLinks：在被标记的模型上写一行
``tags = TagLinks(Tag)``，即可得到符合约定的关联表和双向 relationship。

关联表结构示意（以 posts 表为例）：

    ┌─────────────┐          ┌──────────────────┐          ┌─────────────┐
    │    posts    │    N     │    posts_tags    │    M     │    tags     │
    │─────────────│◄─────────│   (自动创建)     │─────────►│─────────────│
    │ id (PK)     │ CASCADE  │ post_id (FK)     │ RESTRICT │ tag (PK)    │
    │ title       │          │ tag (FK)         │          │             │
    │             │          │ PK(tag, post_id) │          │             │
    │ tags ───────┼──────────────────────────────────────►│ posts ──────│
    └─────────────┘                                        └─────────────┘

- 删除业务记录：数据库级联删除其关联行
- 删除标签：只要还有关联行，数据库拒绝删除（RESTRICT）
- 修改标签文本：关联行随之更新（ON UPDATE CASCADE）
"""

from typing import Optional, Type, Union

from sqlalchemy import Column, ForeignKey, Integer, MetaData, PrimaryKeyConstraint, String, Table
from sqlalchemy.orm import backref as sa_backref
from sqlalchemy.orm import relationship

from .utils import pluralize, singularize, to_snake_case


DEFAULT_TAG_COLUMN = "tag"


class _TagLinksConfig:
    """TagLinks 字段配置（类创建完成前的占位对象）"""

    def __init__(
        self,
        tag_model: Type,
        table_name: Optional[str] = None,
        backref: Union[bool, str] = True,
        lazy: str = "selectin",
        **kwargs
    ):
        self.tag_model = tag_model
        self.table_name = table_name
        self.backref = backref
        self.lazy = lazy
        self.kwargs = kwargs


def TagLinks(
    tag_model: Type,
    table_name: Optional[str] = None,
    backref: Union[bool, str] = True,
    lazy: str = "selectin",
    **kwargs
) -> _TagLinksConfig:
    """标签关联字段（自动创建 <表名>_tags 关联表）

    Args:
        tag_model: 标签模型类（主键为标签文本）
        table_name: 关联表名，None 时为 "<表名>_<字段名>"，如 posts_tags
        backref: 在标签模型上创建的反向引用
            - True: 自动生成复数名称（如 Post → posts）
            - str: 使用指定名称
            - False: 不创建反向引用
        lazy: relationship 加载策略
        **kwargs: 传递给 relationship 的其他参数

    使用示例:
        class Post(BaseModel, TaggableMixin):
            __tablename__ = "posts"
            title: Mapped[str] = mapped_column(String(200))
            tags = TagLinks(Tag)

        post.tags          # [Tag('python'), ...]
        tag.posts          # 反向访问
    """
    return _TagLinksConfig(
        tag_model=tag_model,
        table_name=table_name,
        backref=backref,
        lazy=lazy,
        **kwargs
    )


def tag_column_of(tag_model: Type) -> str:
    """标签模型中保存标签文本的列名"""
    return getattr(tag_model, "__tag_column__", DEFAULT_TAG_COLUMN)


def build_tag_link_table(
    metadata: MetaData,
    related_table: str,
    tag_table: str,
    tag_column: str = DEFAULT_TAG_COLUMN,
    table_name: Optional[str] = None,
    tag_type=None,
) -> Table:
    """创建（或取回已存在的）标签关联表

    Args:
        metadata: 关联表所属的 MetaData
        related_table: 被标记的表名，其主键列必须为 id
        tag_table: 标签表名
        tag_column: 标签表中保存标签文本的列名，同时也是关联表中的列名
        table_name: 关联表名，默认 "<related_table>_tags"
        tag_type: 标签列类型，默认 String(255)
    """
    table_name = table_name or f"{related_table}_tags"
    if table_name in metadata.tables:
        return metadata.tables[table_name]

    related_column = f"{singularize(related_table)}_id"
    return Table(
        table_name,
        metadata,
        Column(
            related_column,
            Integer,
            ForeignKey(f"{related_table}.id", ondelete="CASCADE"),
            nullable=False,
        ),
        Column(
            tag_column,
            tag_type if tag_type is not None else String(255),
            ForeignKey(f"{tag_table}.{tag_column}", ondelete="RESTRICT", onupdate="CASCADE"),
            nullable=False,
        ),
        PrimaryKeyConstraint(tag_column, related_column),
    )


def process_tag_link_fields(cls):
    """处理模型类中的 TagLinks 字段定义

    在 CoreModel.__init_subclass__ 中调用。扫描范围：类自身 + Mixin / abstract 基类
    （跳过已有 __tablename__ 的具体模型基类）。
    """
    processed_names = set()

    for klass in cls.__mro__:
        if klass is object:
            continue
        if klass is not cls and '__tablename__' in klass.__dict__:
            continue

        for attr_name, config in list(vars(klass).items()):
            if attr_name in processed_names:
                continue
            if isinstance(config, _TagLinksConfig):
                _process_tag_links(cls, attr_name, config)
                processed_names.add(attr_name)


def _process_tag_links(cls, attr_name: str, config: _TagLinksConfig):
    """把 TagLinks 占位替换为关联表 + relationship"""
    from .core_model import Base

    tag_model = config.tag_model
    tag_column = tag_column_of(tag_model)
    related_table = cls.__tablename__

    tag_type = None
    tag_table_obj = getattr(tag_model, "__table__", None)
    if tag_table_obj is not None and tag_column in tag_table_obj.c:
        tag_type = tag_table_obj.c[tag_column].type

    link_table = build_tag_link_table(
        Base.metadata,
        related_table=related_table,
        tag_table=tag_model.__tablename__,
        tag_column=tag_column,
        table_name=config.table_name or f"{related_table}_{attr_name}",
        tag_type=tag_type,
    )

    rel_kwargs = dict(config.kwargs)
    rel_kwargs['secondary'] = link_table
    rel_kwargs['lazy'] = config.lazy

    # 标签侧的反向集合不主动加载，删除标签时以数据库的 RESTRICT 为准
    if config.backref is True:
        backref_name = pluralize(to_snake_case(cls.__name__, remove_model_suffix=True))
        rel_kwargs['backref'] = sa_backref(backref_name, lazy="select", passive_deletes=True)
    elif config.backref:
        rel_kwargs['backref'] = sa_backref(config.backref, lazy="select", passive_deletes=True)

    setattr(cls, attr_name, relationship(tag_model, **rel_kwargs))


__all__ = [
    "TagLinks",
    "DEFAULT_TAG_COLUMN",
    "tag_column_of",
    "build_tag_link_table",
    "process_tag_link_fields",
    "_TagLinksConfig",
]
