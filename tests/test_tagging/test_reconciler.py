"""
TagReconciler 测试

测试内容:
- 标签规范化、去重与幂等
- 移除关联后的孤立标签回收（预置标签与共享标签保留）
- 请求参数读取（posts_tags / posts_tags[]）
- 并发创建同名标签时的冲突恢复
- 生命周期入口 before_validate / populate_tags
"""

import pytest
from sqlalchemy import func, insert, select

from ytag.tagging import (
    RelatedRecordGatherer,
    TagConfigurationError,
    TagReconciler,
    TagRegistry,
    UnknownRelatedTypeError,
    read_tag_payload,
)
from ytag.tagging import tag_store

from tests.helpers.tagging_models import Label, Note, Photo, Post, Tag


def tag_texts(session):
    return [t for (t,) in session.query(Tag.tag).order_by(Tag.tag).all()]


def link_count(session, post):
    table = Post.__mapper__.relationships["tags"].secondary
    return session.scalar(select(func.count()).select_from(table).where(table.c.post_id == post.id))


class TestReconcile:
    """reconcile() 测试"""

    def test_creates_missing_tags(self, db_session, reconciler):
        post = Post(title="hello")

        result = reconciler.reconcile(post, ["Python", "ORM"])

        assert result == ["python", "orm"]
        assert post.get_tags() == ["orm", "python"]
        assert post.id is not None
        assert tag_texts(db_session) == ["featured", "orm", "python"]

    def test_normalizes_and_dedupes(self, db_session, reconciler):
        """首尾空白、大小写、HTML 实体和重复项都被规范化"""
        post = Post(title="hello")

        result = reconciler.reconcile(post, ["  Red  ", "red", "RED", "", "   ", "R&amp;D"])

        assert result == ["red", "r&d"]
        assert post.get_tags() == ["r&d", "red"]
        assert link_count(db_session, post) == 2

    def test_idempotent(self, db_session, reconciler):
        """同一期望集合重复同步不产生变化"""
        post = Post(title="hello")
        reconciler.reconcile(post, ["red", "blue"])
        reconciler.reconcile(post, ["blue", "red"])

        assert post.get_tags() == ["blue", "red"]
        assert link_count(db_session, post) == 2
        assert tag_texts(db_session) == ["blue", "featured", "red"]

    def test_removes_orphan_tag(self, db_session, reconciler):
        """被移除且没有其他关联的标签被删除"""
        post = Post(title="hello")
        reconciler.reconcile(post, ["red", "blue"])
        reconciler.reconcile(post, ["blue"])

        assert post.get_tags() == ["blue"]
        assert not Tag.exists("red")

    def test_keeps_shared_tag(self, db_session, reconciler):
        """被其他类型的记录引用的标签保留"""
        post = Post(title="hello")
        photo = Photo(caption="sunset")
        reconciler.reconcile(post, ["red"])
        reconciler.reconcile(photo, ["red"])

        reconciler.reconcile(post, [])

        assert post.get_tags() == []
        assert Tag.exists("red")
        assert photo.get_tags() == ["red"]

    def test_keeps_preset_tag(self, db_session, reconciler):
        """预置标签即使没有任何关联也不会被删除"""
        post = Post(title="hello")
        reconciler.reconcile(post, ["Featured", "red"])
        reconciler.reconcile(post, [])

        assert Tag.exists("featured")
        assert not Tag.exists("red")

    def test_existing_tags_reused(self, db_session, reconciler):
        p1 = Post(title="one")
        p2 = Post(title="two")
        reconciler.reconcile(p1, ["red"])
        reconciler.reconcile(p2, ["RED"])

        assert tag_texts(db_session) == ["featured", "red"]

    def test_unknown_related_type(self, db_session, reconciler):
        """实体类型没有关联到已配置的标签类型"""
        with pytest.raises(UnknownRelatedTypeError):
            reconciler.reconcile(Note(body="x"), ["red"])

    def test_custom_column_tag_type(self, db_session):
        """自定义列名的标签类型同样支持同步与回收"""
        registry = TagRegistry()
        registry.configure(Label, column="name", session=db_session)
        reconciler = TagReconciler(registry, session=db_session)

        note = Note(body="todo")
        assert reconciler.reconcile(note, ["Urgent", "Home"]) == ["urgent", "home"]
        assert note.get_tags() == ["home", "urgent"]

        reconciler.reconcile(note, ["home"])
        assert db_session.get(Label, "urgent") is None
        assert db_session.get(Label, "home") is not None

    def test_missing_link_attribute(self, db_session, registry, reconciler):
        """关联类型上没有指向标签的 relationship 时报配置错误"""
        related_cfg = registry.get_config(Tag).related_config(Post)
        related_cfg.link_attr = None

        with pytest.raises(TagConfigurationError) as exc_info:
            reconciler.reconcile(Post(title="x"), ["red"])

        assert exc_info.value.code == "MISSING_LINK_ATTRIBUTE"


class TestConcurrentCreate:
    """并发创建同名标签测试"""

    def test_integrity_error_recovered(self, db_session, registry, monkeypatch):
        """存在性检查之后另一事务插入了同名标签，创建时的冲突被吸收"""
        db_session.execute(insert(Tag.__table__).values(tag="red"))
        monkeypatch.setattr(tag_store, "tag_exists", lambda *args, **kwargs: False)

        tag = Tag.get_or_create("red", session=db_session)

        assert tag.tag == "red"
        assert db_session.query(Tag).filter(Tag.tag == "red").count() == 1

    def test_conflict_with_different_case(self, db_session, registry, monkeypatch):
        """已存在 red 时，按 Red 创建产生的冲突同样被吸收"""
        db_session.execute(insert(Tag.__table__).values(tag="red"))
        monkeypatch.setattr(tag_store, "tag_exists", lambda *args, **kwargs: False)

        tag = Tag.get_or_create("Red", session=db_session)

        assert tag.tag == "red"
        assert db_session.query(Tag).filter(Tag.tag == "red").count() == 1

    def test_reconcile_after_conflict(self, db_session, registry, monkeypatch):
        db_session.execute(insert(Tag.__table__).values(tag="red"))
        monkeypatch.setattr(tag_store, "tag_exists", lambda *args, **kwargs: False)

        post = Post(title="hello")
        TagReconciler(registry, session=db_session).reconcile(post, ["red"])

        assert post.get_tags() == ["red"]


class TestPopulate:
    """请求参数同步测试"""

    def test_populate_plain_key(self, db_session, reconciler):
        post = Post(title="hello")

        result = reconciler.populate(post, {"posts_tags": ["Python", "orm"]})

        assert result == ["python", "orm"]
        assert post.get_tags() == ["orm", "python"]

    def test_populate_bracket_key(self, db_session, reconciler):
        """PHP 风格的 posts_tags[] 键名同样有效"""
        post = Post(title="hello")

        reconciler.populate(post, {"posts_tags[]": ["python"]})

        assert post.get_tags() == ["python"]

    def test_populate_bytes_values(self, db_session, reconciler):
        """bytes 值按 UTF-8 解码"""
        post = Post(title="hello")

        result = reconciler.populate(post, {"posts_tags": [b"Python", b"orm"]})

        assert result == ["python", "orm"]
        assert post.get_tags() == ["orm", "python"]

    def test_populate_missing_key_clears(self, db_session, reconciler):
        """参数中没有该类型的键时标签被清空"""
        post = Post(title="hello")
        reconciler.reconcile(post, ["python"])

        reconciler.populate(post, {"title": "hello"})

        assert post.get_tags() == []

    def test_populate_uses_type_specific_key(self, db_session, reconciler):
        photo = Photo(caption="sunset")

        reconciler.populate(photo, {"posts_tags": ["ignored"], "photos_tags": ["sky"]})

        assert photo.get_tags() == ["sky"]

    def test_read_tag_payload_variants(self):
        assert read_tag_payload({"k": ["a", "b"]}, "k") == ["a", "b"]
        assert read_tag_payload({"k[]": ["a"]}, "k") == ["a"]
        assert read_tag_payload({"k": "a"}, "k") == ["a"]
        assert read_tag_payload({"k": None}, "k") == []
        assert read_tag_payload({}, "k") == []

    def test_read_tag_payload_multidict(self):
        """带 getlist() 的多值表单按多值读取"""
        class FormData(dict):
            def getlist(self, key):
                return {"k": ["a"], "k[]": ["b", "c"]}.get(key, [])

        assert read_tag_payload(FormData(), "k") == ["a", "b", "c"]


class TestLifecycle:
    """TaggableMixin 生命周期入口测试"""

    def test_before_validate(self, db_session, reconciler):
        post = Post(title="hello")

        assert post.before_validate(["Python"], reconciler) == ["python"]
        assert post.has_tag("PYTHON")
        assert post.get_tag_count() == 1

    def test_populate_tags(self, db_session, reconciler):
        post = Post(title="hello")

        post.populate_tags({Post.tag_payload_key(): ["orm"]}, reconciler)

        assert post.get_tags() == ["orm"]

    def test_tag_payload_key(self):
        assert Post.tag_payload_key() == "posts_tags"
        assert Photo.tag_payload_key() == "photos_tags"
        assert Note.tag_payload_key() == "notes_labels"


class TestEndToEnd:
    """同步、检索、回收的完整流程"""

    def test_scenario(self, db_session, registry):
        reconciler = TagReconciler(registry, session=db_session)
        gatherer = RelatedRecordGatherer(registry, session=db_session)

        post = Post(title="Intro to ORM")
        photo = Photo(caption="Diagram 2")
        reconciler.reconcile(post, ["orm", "python"])
        reconciler.reconcile(photo, ["ORM", "diagram"])

        assert gatherer.gather("orm") == [photo, post]
        assert gatherer.gather("python, diagram", limit=1) == [photo]

        reconciler.reconcile(photo, ["diagram"])
        assert Tag.exists("orm")
        assert gatherer.gather("orm") == [post]

        reconciler.reconcile(post, ["featured"])
        assert not Tag.exists("orm")
        assert not Tag.exists("python")
        assert gatherer.gather("featured") == [post]
        assert tag_texts(db_session) == ["diagram", "featured"]
