"""标签存储操作

按"先判断存在，再创建"的方式写入标签；创建时使用 SAVEPOINT，
并发插入同一文本导致的唯一约束冲突只回滚 SAVEPOINT 并视为已存在。
"""

from typing import Optional, Type

from sqlalchemy import exists as sa_exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ytag.log import get_logger

logger = get_logger("ytag.tagging.tag_store")


def tag_exists(session: Session, tag_model: Type, column: str, text: str) -> bool:
    """标签文本是否已存储"""
    attr = getattr(tag_model, column)
    return bool(session.scalar(select(sa_exists().where(attr == text))))


def find_tag(session: Session, tag_model: Type, column: str, text: str):
    """按标签文本读取标签，不存在返回 None"""
    attr = getattr(tag_model, column)
    return session.query(tag_model).filter(attr == text).one_or_none()


def create_tag(session: Session, tag_model: Type, column: str, text: str):
    """创建标签；唯一约束冲突时返回已存在的记录

    Raises:
        IntegrityError: 冲突后仍读不到记录（不是重复插入导致的约束错误）
    """
    tag = tag_model(**{column: text})
    try:
        with session.begin_nested():
            session.add(tag)
            session.flush()
    except IntegrityError:
        logger.debug(f"标签 {text!r} 已被并发创建，改为读取已有记录")
        existing = find_tag(session, tag_model, column, text)
        if existing is None:
            raise
        return existing

    logger.info(f"创建标签: {tag_model.__name__}({text!r})")
    return tag


def get_or_create_tag(session: Session, tag_model: Type, column: str, text: str):
    """获取或创建标签"""
    if tag_exists(session, tag_model, column, text):
        return find_tag(session, tag_model, column, text)
    return create_tag(session, tag_model, column, text)


def ensure_tag(session: Session, config, text: str):
    """按标签类型配置获取或创建标签（text 须已规范化）"""
    return get_or_create_tag(session, config.tag_model, config.column, text)


def delete_tag(session: Session, config, text: str) -> bool:
    """删除标签，返回是否真的删除了记录

    调用方负责先确认该标签没有任何关联；若仍有关联，数据库的 RESTRICT
    约束会使 flush 失败，异常原样抛出。
    """
    tag: Optional[object] = find_tag(session, config.tag_model, config.column, text)
    if tag is None:
        return False
    session.delete(tag)
    session.flush()
    logger.info(f"删除标签: {config.tag_model.__name__}({text!r})")
    return True
