"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 内存数据库引擎（开启外键约束）
- 绑定到 CoreModel.query 的数据库会话
- 临时文件
"""

import os
import tempfile
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from ytag.orm import Base, CoreModel, enable_sqlite_foreign_keys

# 导入测试模型，保证 create_all 时所有表都已注册
import tests.helpers.tagging_models  # noqa: F401


# ==================== 基础 Fixtures ====================

@pytest.fixture(scope="session")
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_file(temp_dir):
    """创建临时文件的工厂函数"""
    created_files = []

    def _create_file(filename: str, content: str = "") -> str:
        filepath = os.path.join(temp_dir, filename)
        if os.path.dirname(filepath):
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
        created_files.append(filepath)
        return filepath

    yield _create_file

    for f in created_files:
        if os.path.exists(f):
            os.remove(f)


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def memory_engine():
    """创建内存数据库引擎

    使用 StaticPool 和 check_same_thread=False 确保所有操作使用同一个连接，
    并开启 SQLite 外键约束，使关联表的 CASCADE / RESTRICT 生效。
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(memory_engine) -> Generator[Session, None, None]:
    """创建所有表并返回绑定到 CoreModel.query 的会话

    scopefunc 返回固定值，TestClient 的工作线程也拿到同一个 session。
    """
    Base.metadata.create_all(bind=memory_engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=True, bind=memory_engine)
    session_scope = scoped_session(SessionLocal, scopefunc=lambda: 0)
    CoreModel.query = session_scope.query_property()

    yield session_scope()

    session_scope.remove()
