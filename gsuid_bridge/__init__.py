"""
gsuid-bridge - 聊天平台与 gsuid-core 之间的消息桥。
"""

__version__ = "0.1.0"
__logo__ = "🌉"
