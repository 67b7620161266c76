"""
数据库会话管理测试

测试内容:
- DatabaseManager 初始化（内存 SQLite、配置对象）
- db_session_scope 提交 / 回滚
- resolve_session 的查找顺序
- SQLite 外键开关
"""

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session

from ytag.config import DatabaseSettings
from ytag.orm import (
    db_manager,
    db_session_scope,
    enable_sqlite_foreign_keys,
    get_db,
    get_engine,
    init_database,
    resolve_session,
)

from tests.helpers.tagging_models import Tag


@pytest.fixture
def managed_db():
    """使用内存数据库初始化 db_manager，测试结束后释放"""
    engine, session_scope = init_database(
        "sqlite:///:memory:",
        create_tables=True,
        auto_setup_query=False,
    )
    yield engine, session_scope
    db_manager.dispose()


class TestDatabaseManager:
    """DatabaseManager 测试"""

    def test_singleton(self):
        from ytag.orm.db_session import DatabaseManager

        assert DatabaseManager() is db_manager

    def test_init_memory_database(self, managed_db):
        engine, session_scope = managed_db

        assert db_manager.is_initialized
        assert get_engine() is engine
        assert db_manager.get_session() is session_scope()

    def test_foreign_keys_enabled(self, managed_db):
        engine, _ = managed_db

        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_init_from_config(self):
        config = DatabaseSettings(url="sqlite:///:memory:", echo=False)
        try:
            engine, _ = init_database(config=config, auto_setup_query=False)
            assert engine.url.database == ":memory:"
        finally:
            db_manager.dispose()

    def test_init_requires_url(self):
        with pytest.raises(ValueError):
            init_database(None, auto_setup_query=False)

    def test_uninitialized_access(self):
        db_manager.dispose()

        assert not db_manager.is_initialized
        with pytest.raises(RuntimeError):
            db_manager.engine


class TestSessionScope:
    """db_session_scope / get_db 测试"""

    def test_commit_on_exit(self, managed_db):
        with db_session_scope() as session:
            session.add(Tag(tag="python"))

        with db_session_scope() as session:
            assert session.get(Tag, "python") is not None

    def test_rollback_on_error(self, managed_db):
        with pytest.raises(RuntimeError):
            with db_session_scope() as session:
                session.add(Tag(tag="python"))
                session.flush()
                raise RuntimeError("boom")

        with db_session_scope() as session:
            assert session.get(Tag, "python") is None

    def test_get_db_generator(self, managed_db):
        gen = get_db()
        session = next(gen)
        assert isinstance(session, Session)
        session.add(Tag(tag="orm"))

        with pytest.raises(StopIteration):
            next(gen)

        with db_session_scope() as session:
            assert session.get(Tag, "orm") is not None


class TestResolveSession:
    """resolve_session 查找顺序测试"""

    def test_explicit_session_wins(self, db_session, memory_engine):
        other = Session(bind=memory_engine)
        try:
            assert resolve_session(Tag, other) is other
        finally:
            other.close()

    def test_model_query_session(self, db_session):
        assert resolve_session(Tag) is db_session

    def test_fallback_to_manager(self, managed_db):
        _, session_scope = managed_db

        assert resolve_session(object()) is session_scope()


class TestSqliteForeignKeys:
    """enable_sqlite_foreign_keys 测试"""

    def test_idempotent(self):
        engine = create_engine("sqlite://")
        enable_sqlite_foreign_keys(engine)
        enable_sqlite_foreign_keys(engine)

        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        engine.dispose()
