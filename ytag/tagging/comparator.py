"""跨类型记录比较

不同业务类型的记录合并成一个列表后，每个类型按自己的排序代理取值，
再统一用"自然排序 + 忽略大小写"比较：数字片段按数值比较，其余按小写文本比较。

    natural_key("Photo 10") > natural_key("photo 9")   # True
"""

import functools
import re
from enum import Enum
from typing import Any, Iterable, List, Mapping, Tuple, Type

from .exceptions import UnknownRelatedTypeError

_CHUNK_RE = re.compile(r"[0-9]+|[^0-9]+")


class SortDirection(str, Enum):
    """排序方向"""
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value) -> "SortDirection":
        """解析排序方向，大小写不敏感

        Raises:
            ValueError: 既不是 asc 也不是 desc
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"排序方向只能是 asc 或 desc: {value!r}") from None


def natural_key(value: Any) -> Tuple[Tuple[int, Any], ...]:
    """自然排序键

    数字片段生成 (0, 数值)，文本片段生成 (1, 小写文本)；前导空白忽略，None 视为空串。
    """
    text = "" if value is None else str(value)
    text = text.lstrip().lower()
    return tuple(
        (0, int(chunk)) if chunk.isascii() and chunk.isdigit() else (1, chunk)
        for chunk in _CHUNK_RE.findall(text)
    )


def natcasecmp(a: Any, b: Any) -> int:
    """自然排序、忽略大小写的三路比较，返回 -1 / 0 / 1"""
    ka, kb = natural_key(a), natural_key(b)
    return (ka > kb) - (ka < kb)


class CrossTypeComparator:
    """按类型取排序代理值的比较器

    Args:
        proxies: {业务类型: 排序代理名称}；代理可以是属性，也可以是无参方法
        direction: 排序方向，asc / desc

    使用示例:
        comparator = CrossTypeComparator({Post: "title", Photo: "caption"}, "desc")
        records = comparator.sort(posts + photos)
    """

    def __init__(self, proxies: Mapping[Type, str], direction="asc"):
        self.proxies = dict(proxies)
        self.direction = SortDirection.parse(direction)

    def proxy_name(self, record) -> str:
        record_type = type(record)
        proxy = self.proxies.get(record_type)
        if proxy is not None:
            return proxy
        for klass in record_type.__mro__:
            if klass in self.proxies:
                return self.proxies[klass]
        raise UnknownRelatedTypeError(record_type, list(self.proxies))

    def proxy_value(self, record) -> Any:
        """读取记录的排序代理值"""
        value = getattr(record, self.proxy_name(record))
        if callable(value):
            value = value()
        return value

    def key(self, record) -> Tuple:
        return natural_key(self.proxy_value(record))

    def compare(self, a, b) -> int:
        """比较两条记录，返回 -1 / 0 / 1（desc 时取反）"""
        order = natcasecmp(self.proxy_value(a), self.proxy_value(b))
        if self.direction is SortDirection.DESC:
            return -order
        return order

    def sort(self, records: Iterable) -> List:
        """稳定排序

        desc 只反转比较结果，比较相等的记录保持原有相对顺序。
        """
        return sorted(records, key=functools.cmp_to_key(self.compare))
