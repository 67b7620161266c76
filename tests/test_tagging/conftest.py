"""
标签测试 Fixtures

提供已注册 Tag 类型的注册表，以及快速创建带标签记录的工厂函数。
"""

import random

import pytest

from ytag.tagging import GarbageCollector, RelatedRecordGatherer, TagReconciler, TagRegistry

from tests.helpers.tagging_models import Link, Photo, Post, Tag


@pytest.fixture
def registry(db_session):
    """注册 Tag 类型（预置标签 featured）的注册表"""
    registry = TagRegistry()
    registry.configure(Tag, preset_tags=["featured"], session=db_session)
    return registry


@pytest.fixture
def reconciler(registry, db_session):
    return TagReconciler(registry, session=db_session)


@pytest.fixture
def gatherer(registry, db_session):
    return RelatedRecordGatherer(registry, session=db_session, rng=random.Random(1234))


@pytest.fixture
def collector(registry, db_session):
    return GarbageCollector(registry, session=db_session)


@pytest.fixture
def make_post(reconciler):
    """创建文章并同步标签的工厂函数"""
    def _make(title, tags=()):
        post = Post(title=title)
        reconciler.reconcile(post, list(tags))
        return post
    return _make


@pytest.fixture
def make_photo(reconciler):
    def _make(caption, tags=()):
        photo = Photo(caption=caption)
        reconciler.reconcile(photo, list(tags))
        return photo
    return _make


@pytest.fixture
def make_link(reconciler):
    def _make(url, rank=None, tags=()):
        link = Link(url=url, rank=rank)
        reconciler.reconcile(link, list(tags))
        return link
    return _make
