"""日志模块

使用示例:
    from ytag.log import setup_root_logger, get_logger

    setup_root_logger(level="DEBUG", log_file="logs/app.log")
    logger = get_logger()
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    setup_sql_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    SQL_LOG_FORMAT,
    orm_logger,
    tagging_logger,
    logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "setup_sql_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "SQL_LOG_FORMAT",
    "orm_logger",
    "tagging_logger",
    "logger",
    "get_logger",
]
