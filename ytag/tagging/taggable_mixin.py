"""可标记模型 Mixin

为被标记的业务模型提供排序代理和标签读取方法，并暴露 before_validate 生命周期入口。

使用示例:
    class Post(BaseModel, TaggableMixin):
        __tablename__ = "posts"
        __tag_sort_proxy__ = "title"

        title: Mapped[str] = mapped_column(String(200))
        tags = TagLinks(Tag)

    post.get_tags()           # ["orm", "python"]
    post.has_tag("Python")    # True
    Post.tag_payload_key()    # "posts_tags"
"""

from typing import ClassVar, Iterable, List, Mapping, TYPE_CHECKING

from sqlalchemy import inspect

from .utils import normalize_tag

if TYPE_CHECKING:
    from .reconciler import TagReconciler


class TaggableMixin:
    """标签管理 Mixin

    配置属性:
        __tag_sort_proxy__: 跨类型排序时读取的属性或无参方法名，默认 tag_sort_value
        __tag_link_attr__: 指向标签集合的 relationship 名称，默认 tags
    """

    __tag_sort_proxy__: ClassVar[str] = "tag_sort_value"

    __tag_link_attr__: ClassVar[str] = "tags"

    def tag_sort_value(self) -> str:
        """默认排序代理：对象的字符串表示"""
        return str(self)

    def _tag_objects(self) -> list:
        return list(getattr(self, self.__tag_link_attr__))

    def get_tags(self) -> List[str]:
        """获取标签文本列表（按文本排序）"""
        return sorted(str(tag) for tag in self._tag_objects())

    def has_tag(self, text: str) -> bool:
        """是否带有某个标签（比较前先规范化）"""
        text = normalize_tag(text)
        return text is not None and text in self.get_tags()

    def get_tag_count(self) -> int:
        return len(self._tag_objects())

    @classmethod
    def tag_payload_key(cls) -> str:
        """请求参数中承载本类型标签数组的键名，即关联表名"""
        rel = inspect(cls).relationships[cls.__tag_link_attr__]
        return rel.secondary.name

    # ==================== 生命周期 ====================

    def before_validate(self, desired_tags: Iterable, reconciler: "TagReconciler") -> List[str]:
        """校验/保存前调用：把标签同步为 desired_tags"""
        return reconciler.reconcile(self, desired_tags)

    def populate_tags(self, payload: Mapping, reconciler: "TagReconciler") -> List[str]:
        """从请求参数同步标签（键名见 tag_payload_key()）"""
        return reconciler.populate(self, payload)
