"""版本信息"""

__version__ = "0.1.0"
__author__ = "ytag contributors"
__description__ = "SQLAlchemy 通用标签库"
