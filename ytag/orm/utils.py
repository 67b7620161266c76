"""ORM 工具函数

表名、列名、反向引用名的命名转换。
"""
import re


def to_snake_case(name: str, remove_model_suffix: bool = False) -> str:
    """驼峰命名转下划线命名，连续大写缩写视为一个单词

    Examples:
        >>> to_snake_case("BlogPost")
        'blog_post'
        >>> to_snake_case("HTMLSnippet")
        'html_snippet'
        >>> to_snake_case("PhotoModel", remove_model_suffix=True)
        'photo'
    """
    if remove_model_suffix and name.endswith('Model'):
        name = name[:-5]
    result = re.sub(r'([A-Z\d]+)([A-Z][a-z])', r'\1_\2', name)
    result = re.sub(r'([a-z])([A-Z])', r'\1_\2', result)
    return result.lower()


def pluralize(name: str) -> str:
    """简单的英文复数形式，已以 s 结尾的名称保持不变"""
    if not name.endswith('s'):
        return name + 's'
    return name


def singularize(name: str) -> str:
    """简单的英文单数形式，用于从表名推导外键列名

    Examples:
        >>> singularize("posts")
        'post'
        >>> singularize("categories")
        'category'
        >>> singularize("address")
        'address'
    """
    if name.endswith('ies'):
        return name[:-3] + 'y'
    elif name.endswith('s') and not name.endswith('ss'):
        return name[:-1]
    return name


__all__ = [
    "to_snake_case",
    "pluralize",
    "singularize",
]
