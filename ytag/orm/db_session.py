"""
数据库会话管理模块

提供数据库引擎创建、会话管理等功能。

公开 API:
- db_manager: 数据库管理器单例
- init_database(): 初始化数据库连接
- get_engine(): 获取数据库引擎
- get_db(): FastAPI 依赖注入用的生成器
- db_session_scope(): 非 HTTP 场景的上下文管理器
- enable_sqlite_foreign_keys(): 为 SQLite 引擎开启外键约束
- resolve_session(): 标签组件查找可用 session
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from ytag.log import get_logger

_logger = get_logger("ytag.orm.session")

__all__ = [
    'db_manager',
    'init_database',
    'get_engine',
    'get_db',
    'db_session_scope',
    'enable_sqlite_foreign_keys',
    'resolve_session',
]


def enable_sqlite_foreign_keys(engine: Engine) -> Engine:
    """为 SQLite 引擎的每个新连接执行 PRAGMA foreign_keys=ON

    SQLite 默认不校验外键，关联表的 ON DELETE CASCADE / RESTRICT
    只有在开启后才会由数据库执行。非 SQLite 引擎原样返回。
    """
    if engine.dialect.name != "sqlite":
        return engine

    if not event.contains(engine, "connect", _set_sqlite_pragma):
        event.listen(engine, "connect", _set_sqlite_pragma)
    return engine


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


class DatabaseManager:
    """数据库管理器（单例）

    使用示例:
        from ytag.orm import db_manager

        db_manager.init(database_url="sqlite:///./tags.db")
        engine = db_manager.engine
        session = db_manager.get_session()
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._engine = None
        self._session_scope = None
        self._session_maker = None
        self._initialized = True

    @property
    def engine(self):
        if self._engine is None:
            raise RuntimeError("数据库未初始化，请先调用 init_database()")
        return self._engine

    @property
    def session_scope(self):
        if self._session_scope is None:
            raise RuntimeError("数据库未初始化，请先调用 init_database()")
        return self._session_scope

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None and self._session_scope is not None

    def init(
        self,
        database_url: str = None,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True,
        logger: logging.Logger = None,
        scopefunc: Callable = None,
        config: Any = None,
        auto_setup_query: bool = True,
        create_tables: bool = False,
    ):
        """初始化数据库连接

        Args:
            database_url: 数据库连接URL（提供 config 时忽略）
            echo: 是否输出SQL语句（提供 config 时忽略）
            pool_size: 连接池大小（提供 config 时忽略）
            max_overflow: 最大溢出连接数（提供 config 时忽略）
            pool_recycle: 连接回收时间（提供 config 时忽略）
            pool_pre_ping: 连接前是否ping（提供 config 时忽略）
            logger: 日志记录器
            scopefunc: scoped_session 的作用域函数，默认按线程隔离
            config: DatabaseSettings 配置对象
            auto_setup_query: 是否自动设置 CoreModel.query 属性
            create_tables: 是否根据已声明的模型建表

        Returns:
            tuple: (engine, session_scope)

        使用示例:
            from ytag.orm import init_database, db_session_scope

            init_database("sqlite:///./tags.db", create_tables=True)

            with db_session_scope() as session:
                reconciler.reconcile(post, ["python", "orm"])
        """
        if config is not None:
            database_url = getattr(config, "url", database_url)
            echo = getattr(config, "echo", echo)
            pool_size = getattr(config, "pool_size", pool_size)
            max_overflow = getattr(config, "max_overflow", max_overflow)
            pool_recycle = getattr(config, "pool_recycle", pool_recycle)
            pool_pre_ping = getattr(config, "pool_pre_ping", pool_pre_ping)

        if not database_url:
            raise ValueError("database_url 是必需的，请通过参数或 config 提供")

        if logger is None:
            logger = _logger

        logger.info(f"数据库配置URL: {database_url}")

        if database_url.startswith("sqlite"):
            db_path = database_url.split(":///", 1)[-1]
            if db_path in ("", ":memory:") or database_url == "sqlite://":
                # 内存数据库：单连接，所有 session 共享同一份数据
                self._engine = create_engine(
                    database_url,
                    echo=echo,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                )
                logger.info("SQLite内存数据库引擎创建成功（StaticPool）")
            else:
                self._engine = create_engine(
                    database_url,
                    echo=echo,
                    connect_args={"check_same_thread": False},
                    pool_pre_ping=pool_pre_ping,
                )
                logger.info(f"SQLite文件数据库引擎创建成功: {db_path}")
            enable_sqlite_foreign_keys(self._engine)
        else:
            self._engine = create_engine(
                database_url,
                echo=echo,
                pool_pre_ping=pool_pre_ping,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=pool_recycle,
            )
            logger.info("数据库引擎创建成功")

        self._session_maker = sessionmaker(autocommit=False, autoflush=True, bind=self._engine)
        self._session_scope = scoped_session(self._session_maker, scopefunc=scopefunc)

        if auto_setup_query:
            from .core_model import CoreModel
            CoreModel.query = self._session_scope.query_property()
            logger.info("CoreModel.query 属性已自动设置")

        if create_tables:
            from .core_model import Base
            Base.metadata.create_all(bind=self._engine)
            logger.info("数据表创建完成")

        return self._engine, self._session_scope

    def get_session(self) -> Session:
        """获取当前作用域的 session

        直接使用时需要自行提交/回滚并调用 cleanup()，
        脚本中优先使用 db_session_scope()。
        """
        return self.session_scope()

    def cleanup(self):
        """移除当前作用域的 session，幂等"""
        if self._session_scope is not None and self._session_scope.registry.has():
            self._session_scope.remove()
            _logger.debug("session_scope 移除完成")

    def dispose(self):
        """释放引擎并清空状态（测试或进程退出时使用）"""
        self.cleanup()
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_scope = None
        self._session_maker = None


db_manager = DatabaseManager()


def init_database(database_url: str = None, **kwargs):
    """初始化数据库连接，参数见 DatabaseManager.init()"""
    return db_manager.init(database_url=database_url, **kwargs)


def get_engine():
    return db_manager.engine


def get_db() -> Generator[Session, None, None]:
    """获取数据库 session（FastAPI 依赖注入）

    使用示例:
        @app.get("/posts")
        def list_posts(db: Session = Depends(get_db)):
            ...
    """
    with db_session_scope() as session:
        yield session


@contextmanager
def db_session_scope(auto_commit: bool = True) -> Generator[Session, None, None]:
    """非 HTTP 场景的 session 上下文管理器

    正常退出时提交（auto_commit=True），异常时回滚并重新抛出，最后清理 session。
    """
    session = db_manager.get_session()
    try:
        yield session
        if auto_commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        db_manager.cleanup()


def resolve_session(model: Any = None, session: Optional[Session] = None) -> Session:
    """为标签组件解析可用的 session

    优先级：显式传入的 session > 模型 query 属性绑定的 session > db_manager 的 session。
    """
    if session is not None:
        return session

    query = getattr(model, "query", None) if model is not None else None
    if query is not None:
        return query.session

    return db_manager.get_session()
