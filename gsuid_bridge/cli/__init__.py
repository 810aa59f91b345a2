"""CLI 模块。"""
