"""实用工具。"""
