"""
CoreModel / BaseModel 测试
"""

from tests.helpers.tagging_models import Label, Post, Tag


class TestCoreModelCrud:
    """CRUD 方法测试"""

    def test_save_and_get(self, db_session):
        post = Post(title="hello").save()

        assert post.id is not None
        assert Post.get(post.id) is post

    def test_save_commit(self, db_session):
        post = Post(title="hello").save(commit=True)
        db_session.expire_all()

        assert Post.get(post.id).title == "hello"

    def test_get_all(self, db_session):
        Post(title="a").save()
        Post(title="b").save()

        assert sorted(p.title for p in Post.get_all()) == ["a", "b"]

    def test_delete(self, db_session):
        post = Post(title="hello").save()
        post_id = post.id

        post.delete()

        assert Post.get(post_id) is None

    def test_session_property(self, db_session):
        post = Post(title="hello")
        assert post.session is db_session

        post.save()
        assert post.session is db_session


class TestCoreModelSerialization:
    """序列化与表示测试"""

    def test_to_dict(self, db_session):
        post = Post(title="hello").save()

        data = post.to_dict(exclude={"created_at", "updated_at"})

        assert data == {"id": post.id, "title": "hello"}

    def test_repr(self, db_session):
        post = Post(title="hello").save()

        assert repr(post) == f"<Post id={post.id}>"
        assert repr(Tag(tag="red")) == "<Tag tag='red'>"

    def test_tag_str(self):
        assert str(Tag(tag="red")) == "red"
        assert str(Label(name="todo")) == "todo"
