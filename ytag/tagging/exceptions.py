"""
标签模块异常定义

异常层级:
    TaggingError (基类)
    └── TagConfigurationError        - 配置错误（启动阶段即应暴露）
        ├── UnconfiguredTagTypeError - 标签类型未配置
        └── UnknownRelatedTypeError  - 关联类型与标签类型之间没有多对多关系

数据库层面的错误（sqlalchemy.exc.SQLAlchemyError）不做包装，原样抛出。
"""

from typing import Iterable, Optional


def _type_name(value) -> str:
    return getattr(value, "__name__", str(value))


class TaggingError(Exception):
    """标签操作错误基类

    Attributes:
        message: 错误消息
        code: 错误码
        details: 详细信息
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """转换为字典（用于API响应）"""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class TagConfigurationError(TaggingError):
    """标签配置错误

    标签列不存在、排序代理在关联类型上不存在等。
    """
    pass


class UnconfiguredTagTypeError(TagConfigurationError):
    """标签类型未通过 TagRegistry.configure() 注册"""

    def __init__(self, tag_type=None):
        if tag_type is None:
            message = "尚未配置任何标签类型"
        else:
            message = f"标签类型未配置: {_type_name(tag_type)}"
        super().__init__(
            message=message,
            code="TAG_TYPE_NOT_CONFIGURED",
            details={"tag_type": _type_name(tag_type) if tag_type is not None else None},
        )


class UnknownRelatedTypeError(TagConfigurationError):
    """请求的关联类型与标签类型之间没有多对多关系"""

    def __init__(self, related_type, valid_types: Iterable = (), tag_type=None):
        self.related_type = related_type
        self.valid_types = list(valid_types)
        valid_names = [_type_name(t) for t in self.valid_types]
        target = f"标签类型 {_type_name(tag_type)}" if tag_type is not None else "任何已配置的标签类型"
        message = (
            f"{_type_name(related_type)} 与{target}之间没有多对多关系，"
            f"可用的关联类型: {', '.join(valid_names) or '（无）'}"
        )
        super().__init__(
            message=message,
            code="UNKNOWN_RELATED_TYPE",
            details={
                "related_type": _type_name(related_type),
                "tag_type": _type_name(tag_type) if tag_type is not None else None,
                "valid_types": valid_names,
            },
        )


__all__ = [
    "TaggingError",
    "TagConfigurationError",
    "UnconfiguredTagTypeError",
    "UnknownRelatedTypeError",
]
