"""第三方框架集成

FastAPI 路由位于 ytag.integrations.fastapi，按需导入。
"""
