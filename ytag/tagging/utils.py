"""标签文本规范化工具

规则：去首尾空白、HTML 实体解码、转小写；结果为空视为"没有这个标签"。
"""

import html
import re
from typing import Iterable, List, Optional

_SPLIT_RE = re.compile(r"\s*,\s*")


def normalize_tag(value) -> Optional[str]:
    """规范化单个标签文本，空白或空字符串返回 None

    bytes 按 UTF-8 解码。

    Examples:
        >>> normalize_tag("  Red  ")
        'red'
        >>> normalize_tag("R&amp;D")
        'r&d'
        >>> normalize_tag(b"Red")
        'red'
        >>> normalize_tag("   ") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    text = html.unescape(str(value).strip()).strip().lower()
    return text or None


def normalize_tags(values: Iterable) -> List[str]:
    """规范化一组标签文本，丢弃空值并按首次出现的顺序去重"""
    result = []
    seen = set()
    for value in values or ():
        text = normalize_tag(value)
        if text is not None and text not in seen:
            seen.add(text)
            result.append(text)
    return result


def split_tags(value: str) -> List[str]:
    """按逗号拆分标签字符串，逗号两侧的空白一并去掉

    Examples:
        >>> split_tags("red , blue,green")
        ['red', 'blue', 'green']
    """
    return [part for part in _SPLIT_RE.split(value.strip()) if part]
