"""
FastAPI 集成模块

提供标签相关的 HTTP 路由：
- GET  {prefix}/{tags}/records           按标签检索记录（逗号分隔多个标签）
- PUT  {prefix}/records/{type}/{id}      用请求体中的标签数组同步一条记录的标签
- POST {prefix}/sweep                    回收孤立标签

使用示例:
    from fastapi import FastAPI
    from ytag.orm import get_db
    from ytag.integrations.fastapi import create_tagging_router

    app = FastAPI()
    router = create_tagging_router(registry, get_session=get_db)
    app.include_router(router)
"""

from typing import Any, Callable, Dict, List, Optional, Type

from sqlalchemy import inspect

from ytag.config import TaggingSettings
from ytag.log import get_logger

logger = get_logger("ytag.integrations.fastapi")


def _record_to_dict(record, label) -> Dict[str, Any]:
    identity = inspect(record).identity
    return {
        "type": type(record).__name__,
        "id": identity[0] if identity and len(identity) == 1 else identity,
        "label": "" if label is None else str(label),
    }


def create_tagging_router(
    registry,
    get_session: Callable,
    tag_type: Optional[Type] = None,
    prefix: str = "/tags",
    tags: Optional[List[str]] = None,
    settings: Optional[TaggingSettings] = None,
):
    """创建标签路由

    Args:
        registry: 已完成配置的 TagRegistry
        get_session: 提供 Session 的依赖函数（如 ytag.orm.get_db）
        tag_type: 路由使用的标签类型，默认取注册表中第一个标签类型
        prefix: 路由前缀
        tags: OpenAPI 标签
        settings: 标签配置，提供默认 limit / direction

    Returns:
        APIRouter: FastAPI 路由
    """
    try:
        from fastapi import APIRouter, Body, Depends, HTTPException, Query
    except ImportError:
        raise ImportError(
            "使用 FastAPI 集成需要安装 fastapi: pip install fastapi"
        )

    from ytag.tagging import (
        CrossTypeComparator,
        GarbageCollector,
        RelatedRecordGatherer,
        TagReconciler,
        TaggingError,
        UnconfiguredTagTypeError,
        UnknownRelatedTypeError,
    )

    settings = settings or registry.settings
    router = APIRouter(prefix=prefix, tags=tags or ["tags"])

    def _raise_http(exc: Exception):
        if isinstance(exc, UnconfiguredTagTypeError):
            raise HTTPException(status_code=404, detail=exc.to_dict())
        if isinstance(exc, TaggingError):
            raise HTTPException(status_code=400, detail=exc.to_dict())
        raise HTTPException(status_code=400, detail={"error": "INVALID_ARGUMENT", "message": str(exc)})

    def _resolve_types(config, type_names: Optional[List[str]]):
        if not type_names:
            return None
        by_name = {model.__name__: model for model in config.related_types}
        resolved = []
        for name in type_names:
            if name not in by_name:
                raise UnknownRelatedTypeError(name, config.related_types, config.tag_model)
            resolved.append(by_name[name])
        return resolved

    @router.get("/{tag_list}/records")
    def gather_records(
        tag_list: str,
        limit: int = Query(settings.default_limit, ge=0, description="返回条数，0 表示不限制"),
        direction: str = Query(settings.default_direction, description="排序方向 asc / desc"),
        random: bool = Query(False, description="是否随机打乱"),
        types: Optional[List[str]] = Query(None, description="只检索这些关联类型（模型类名）"),
        session=Depends(get_session),
    ):
        """按标签检索关联记录"""
        try:
            config = registry.get_config(tag_type)
            orderings = _resolve_types(config, types)
            records = RelatedRecordGatherer(registry, session=session).gather(
                tag_list,
                limit=limit,
                orderings=orderings,
                direction=direction,
                tag_type=config.tag_model,
                random=random,
            )
        except (TaggingError, ValueError) as e:
            _raise_http(e)

        comparator = CrossTypeComparator(config.sort_proxies())
        return [_record_to_dict(record, comparator.proxy_value(record)) for record in records]

    @router.put("/records/{type_name}/{record_id}")
    def update_record_tags(
        type_name: str,
        record_id: int,
        payload: Dict[str, Any] = Body(...),
        session=Depends(get_session),
    ):
        """同步一条记录的标签

        请求体的键名为关联表名，如 {"posts_tags": ["python", "orm"]}
        """
        try:
            config = registry.get_config(tag_type)
            (model,) = _resolve_types(config, [type_name])
        except TaggingError as e:
            _raise_http(e)

        record = session.get(model, record_id)
        if record is None:
            raise HTTPException(status_code=404, detail={"error": "RECORD_NOT_FOUND", "message": f"{type_name}#{record_id} 不存在"})

        result = TagReconciler(registry, session=session).populate(record, payload, tag_type=config.tag_model)
        session.commit()
        return {"type": type_name, "id": record_id, "tags": result}

    @router.post("/sweep")
    def sweep_tags(session=Depends(get_session)):
        """回收没有任何关联的非预置标签"""
        try:
            GarbageCollector(registry, session=session).sweep(tag_type)
        except TaggingError as e:
            _raise_http(e)
        session.commit()
        return {"ok": True}

    logger.debug(f"标签路由已创建: prefix={prefix}")
    return router
