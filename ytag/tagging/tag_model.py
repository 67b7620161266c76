"""标签模型定义

提供标签表的抽象模型：以小写标签文本作为主键。

使用示例:
    from ytag.orm import CoreModel
    from ytag.tagging import AbstractTag

    class Tag(CoreModel, AbstractTag):
        __tablename__ = "tags"

    Tag.exists("python")
    tag = Tag.get_or_create("python")
"""

from typing import ClassVar, Optional

from sqlalchemy import String, event
from sqlalchemy.orm import Mapped, Session, mapped_column

from ytag.orm.db_session import resolve_session
from ytag.orm.fields import tag_column_of

from . import tag_store
from .utils import normalize_tag


class AbstractTag:
    """标签抽象模型

    字段说明:
        - tag: 标签文本（主键，保存前自动转小写）

    自定义标签列名的模型可以不继承此类，只需声明 ``__tag_column__``，
    TagRegistry.configure() 会为其挂上同样的小写化钩子。
    """

    __tag_column__: ClassVar[str] = "tag"

    tag: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        comment="标签文本（小写）"
    )

    def __str__(self):
        return self.tag_text or ""

    @property
    def tag_text(self) -> Optional[str]:
        return getattr(self, tag_column_of(type(self)))

    # ==================== 类方法 ====================

    @classmethod
    def find(cls, text: str, session: Session = None):
        """按标签文本查找标签（先规范化），不存在返回 None"""
        text = normalize_tag(text)
        if text is None:
            return None
        session = resolve_session(cls, session)
        return tag_store.find_tag(session, cls, tag_column_of(cls), text)

    @classmethod
    def exists(cls, text: str, session: Session = None) -> bool:
        """标签是否已存储"""
        text = normalize_tag(text)
        if text is None:
            return False
        session = resolve_session(cls, session)
        return tag_store.tag_exists(session, cls, tag_column_of(cls), text)

    @classmethod
    def get_or_create(cls, text: str, session: Session = None):
        """获取或创建标签

        Args:
            text: 标签文本，查找和创建前按 normalize_tag() 规范化
            session: 使用的 session，默认按 resolve_session() 查找

        Raises:
            ValueError: 规范化后为空
        """
        normalized = normalize_tag(text)
        if normalized is None:
            raise ValueError(f"标签文本不能为空: {text!r}")
        session = resolve_session(cls, session)
        return tag_store.get_or_create_tag(session, cls, tag_column_of(cls), normalized)


def lowercase_tag_listener(mapper, connection, target):
    """标签保存前的小写化钩子（before_insert / before_update）"""
    column = tag_column_of(type(target))
    value = getattr(target, column, None)
    if value is None:
        return
    text = str(value).strip().lower()
    if not text:
        raise ValueError(f"{type(target).__name__}.{column} 不能为空")
    if text != value:
        setattr(target, column, text)


def register_lowercase_hook(tag_model) -> None:
    """为标签模型挂上小写化钩子（重复调用无副作用）"""
    for identifier in ("before_insert", "before_update"):
        if not event.contains(tag_model, identifier, lowercase_tag_listener):
            event.listen(tag_model, identifier, lowercase_tag_listener)


# AbstractTag 的所有映射子类自动获得小写化钩子
event.listen(AbstractTag, "before_insert", lowercase_tag_listener, propagate=True)
event.listen(AbstractTag, "before_update", lowercase_tag_listener, propagate=True)
