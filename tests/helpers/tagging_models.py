"""
标签测试模型

所有测试共用同一组模型：标签表 tags 关联 posts / photos / links 三种互不相关的业务表，
另有一个自定义标签列名的 labels 表只关联 notes。

    Tag   ── posts_tags   ── Post   (排序代理: title 属性)
          ── photos_tags  ── Photo  (排序代理: tag_sort_value() 方法)
          ── links_tags   ── Link   (排序代理: rank 整数列)
    Label ── notes_labels ── Note   (标签列: name)
"""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ytag.orm import BaseModel, CoreModel, TagLinks
from ytag.tagging import AbstractTag, TaggableMixin


class Tag(CoreModel, AbstractTag):
    __tablename__ = "tags"


class Post(BaseModel, TaggableMixin):
    __tablename__ = "posts"
    __tag_sort_proxy__ = "title"

    title: Mapped[str] = mapped_column(String(200))

    tags = TagLinks(Tag)


class Photo(BaseModel, TaggableMixin):
    __tablename__ = "photos"

    caption: Mapped[str] = mapped_column(String(200))

    tags = TagLinks(Tag)

    def tag_sort_value(self) -> str:
        return self.caption


class Link(BaseModel, TaggableMixin):
    __tablename__ = "links"
    __tag_sort_proxy__ = "rank"

    url: Mapped[str] = mapped_column(String(500))
    rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    tags = TagLinks(Tag)


class Label(CoreModel):
    """标签列名为 name、不继承 AbstractTag 的标签模型"""
    __tablename__ = "labels"
    __tag_column__ = "name"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)

    def __str__(self):
        return self.name


class Note(BaseModel, TaggableMixin):
    __tablename__ = "notes"
    __tag_sort_proxy__ = "body"
    __tag_link_attr__ = "labels"

    body: Mapped[str] = mapped_column(String(500))

    labels = TagLinks(Label)
