"""测试辅助模块"""
