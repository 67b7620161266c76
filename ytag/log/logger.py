"""
日志工具模块
为标签库提供统一命名的日志记录器与简化的配置入口
"""

import inspect
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from typing import Any, Optional


# 默认日志格式
DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"

# SQL 日志格式（不需要文件位置）
SQL_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class MicrosecondFormatter(logging.Formatter):
    """支持微秒精度的日志格式化器"""

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        s = time.strftime(datefmt or "%Y-%m-%d %H:%M:%S", ct)
        return "%s.%06d" % (s, (record.created - int(record.created)) * 1000000)


def create_formatter(
    log_format: str = None,
    datefmt: str = "%Y-%m-%d %H:%M:%S",
    use_microseconds: bool = True
) -> logging.Formatter:
    """创建日志格式化器

    Args:
        log_format: 日志格式字符串，默认 DEFAULT_LOG_FORMAT
        datefmt: 时间格式
        use_microseconds: 是否使用微秒精度
    """
    fmt = log_format or DEFAULT_LOG_FORMAT
    if use_microseconds:
        return MicrosecondFormatter(fmt=fmt, datefmt=datefmt)
    return logging.Formatter(fmt, datefmt=datefmt)


def setup_logger(
    name: str = None,
    level: str = "INFO",
    log_file: str = None,
    log_format: str = None,
    console: bool = True,
    use_microseconds: bool = True,
    propagate: bool = True,
    max_bytes: int = 0,
    backup_count: int = 0,
) -> logging.Logger:
    """设置并返回配置好的日志记录器

    重复调用会先清空已有处理器，因此可以安全地重新配置。

    Args:
        name: 日志记录器名称，默认为 root logger
        level: 日志级别，可选：DEBUG, INFO, WARNING, ERROR, CRITICAL
        log_file: 日志文件路径，不指定则不写入文件
        log_format: 日志格式
        console: 是否输出到控制台
        use_microseconds: 是否使用微秒精度时间戳
        propagate: 是否传播到父日志器
        max_bytes: 单个日志文件最大字节数，大于 0 时按大小轮转
        backup_count: 轮转保留的备份数量

    Returns:
        配置好的日志记录器

    使用示例:
        from ytag.log import setup_logger

        logger = setup_logger("ytag.tagging", level="DEBUG", log_file="logs/tagging.log")
    """
    _logger = logging.getLogger(name) if name else logging.getLogger()
    _logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    _logger.propagate = propagate
    _logger.handlers.clear()

    formatter = create_formatter(log_format, use_microseconds=use_microseconds)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        _logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        if max_bytes > 0:
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        else:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        _logger.addHandler(file_handler)

    return _logger


def setup_sql_logger(
    level: str = "INFO",
    log_file: str = None,
    console: bool = False,
) -> logging.Logger:
    """设置 SQLAlchemy engine 日志记录器

    SQL 日志不传播到根日志器，避免与业务日志混在一起。
    """
    return setup_logger(
        name="sqlalchemy.engine",
        level=level,
        log_file=log_file,
        log_format=SQL_LOG_FORMAT,
        console=console,
        propagate=False,
    )


def setup_root_logger(
    level: str = "INFO",
    log_file: str = None,
    console: bool = True,
    config: Any = None,
) -> logging.Logger:
    """设置根日志记录器

    Args:
        level: 日志级别（提供 config 时忽略）
        log_file: 日志文件路径（提供 config 时忽略）
        console: 是否输出到控制台（提供 config 时忽略）
        config: LoggingSettings 或任何具备同名属性的对象

    使用示例:
        from ytag.config import AppSettings
        from ytag.log import setup_root_logger

        settings = AppSettings()
        setup_root_logger(config=settings.logging)
    """
    log_format = None
    max_bytes = 0
    backup_count = 0

    if config is not None:
        level = getattr(config, "level", level)
        log_file = getattr(config, "file_path", log_file)
        console = getattr(config, "console", console)
        log_format = getattr(config, "format", None)
        max_bytes = getattr(config, "file_max_bytes", 0)
        backup_count = getattr(config, "file_backup_count", 0)

        if getattr(config, "sql_log_enabled", False):
            setup_sql_logger(
                level=getattr(config, "sql_log_level", "INFO"),
                log_file=getattr(config, "sql_log_file_path", None),
            )

    return setup_logger(
        name=None,
        level=level,
        log_file=log_file,
        log_format=log_format,
        console=console,
        propagate=False,
        max_bytes=max_bytes,
        backup_count=backup_count,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """获取日志记录器，支持自动推断模块名

    无参数调用时，从调用栈获取模块的 __name__ 作为日志器名称；
    传入不含点号的短名称时，自动添加 'ytag.' 前缀。

    使用示例:
        logger = get_logger()                     # 在 ytag/tagging/gatherer.py 中 -> "ytag.tagging.gatherer"
        logger = get_logger("tagging")            # -> "ytag.tagging"
        logger = get_logger("sqlalchemy.engine")  # 含点号，不添加前缀
    """
    if name is None:
        frame = inspect.currentframe()
        if frame is not None and frame.f_back is not None:
            name = frame.f_back.f_globals.get('__name__', 'ytag')
        else:
            name = 'ytag'
    elif name != 'ytag' and '.' not in name:
        name = f"ytag.{name}"

    return logging.getLogger(name)


orm_logger = get_logger("orm")
tagging_logger = get_logger("tagging")

# 通用日志记录器
logger = logging.getLogger("ytag")
