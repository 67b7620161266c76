#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
标签库演示：一个标签表 + 多个互不相关的业务表

================================================================================
                        TagLinks 自动完成以下工作
================================================================================

只需一行代码：
    tags = TagLinks(Tag)

自动创建：
    ✓ 关联表：posts_tags（post_id → posts.id ON DELETE CASCADE，
                          tag → tags.tag ON DELETE RESTRICT ON UPDATE CASCADE）
    ✓ relationship：post.tags
    ✓ backref：tag.posts

================================================================================
"""

import os

from sqlalchemy import String, delete
from sqlalchemy.orm import Mapped, mapped_column

from ytag.config import LoggingSettings
from ytag.log import setup_root_logger
from ytag.orm import BaseModel, CoreModel, TagLinks, db_session_scope, init_database
from ytag.tagging import (
    AbstractTag,
    GarbageCollector,
    RelatedRecordGatherer,
    TaggableMixin,
    TagReconciler,
    TagRegistry,
)


class Tag(CoreModel, AbstractTag):
    __tablename__ = "demo_tags"


class Article(BaseModel, TaggableMixin):
    """文章：按标题排序"""
    __tablename__ = "demo_articles"
    __tag_sort_proxy__ = "title"

    title: Mapped[str] = mapped_column(String(200))

    tags = TagLinks(Tag)


class Picture(BaseModel, TaggableMixin):
    """图片：按 tag_sort_value() 返回的说明文字排序"""
    __tablename__ = "demo_pictures"

    caption: Mapped[str] = mapped_column(String(200))

    tags = TagLinks(Tag)

    def tag_sort_value(self) -> str:
        return self.caption


def show(title, records):
    print(f"{title}:")
    for record in records:
        label = getattr(record, "title", None) or record.caption
        print(f"    {type(record).__name__:<8} {label}")


def main():
    setup_root_logger(config=LoggingSettings(level="WARNING"))

    script_dir = os.path.dirname(os.path.abspath(__file__))
    db_path = os.path.join(script_dir, "demo_tagging.db")
    engine, _ = init_database(f"sqlite:///{db_path}")

    print("\n清空并重建数据表...")
    BaseModel.metadata.drop_all(engine)
    BaseModel.metadata.create_all(engine)

    with db_session_scope() as session:
        print("\n--- 1. 注册标签类型 ---")
        registry = TagRegistry()
        config = registry.configure(Tag, preset_tags=["featured"], session=session)
        print(f"关联类型: {[m.__name__ for m in config.related_types]}")
        print(f"排序代理: { {m.__name__: p for m, p in config.sort_proxies().items()} }")

        print("\n--- 2. 同步标签 ---")
        reconciler = TagReconciler(registry, session=session)
        a1 = Article(title="Chapter 10")
        a2 = Article(title="chapter 2")
        p1 = Picture(caption="Cover 1")
        print(reconciler.reconcile(a1, ["  Python ", "ORM", "python"]))
        print(reconciler.reconcile(a2, ["python"]))
        print(reconciler.populate(p1, {"demo_pictures_tags[]": ["Cover", "orm"]}))

        print("\n--- 3. 跨类型检索 ---")
        gatherer = RelatedRecordGatherer(registry, session=session)
        show("python, orm（自然排序）", gatherer.gather("python, orm"))
        show("python, orm（倒序，前 2 条）", gatherer.gather("python, orm", limit=2, direction="desc"))
        show("orm（随机）", gatherer.gather("orm", random=True))

        print("\n--- 4. 移除标签后自动回收 ---")
        reconciler.reconcile(p1, ["orm"])
        print(f"cover 仍存在: {Tag.exists('cover', session=session)}")

        print("\n--- 5. 批量删除后全量回收 ---")
        session.execute(delete(Article.__table__))
        session.expire_all()
        GarbageCollector(registry, session=session).sweep(Tag)
        print(f"剩余标签: {[t.tag for t in session.query(Tag).order_by(Tag.tag)]}")


if __name__ == "__main__":
    main()
