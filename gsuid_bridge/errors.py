"""
gsuid-bridge 的错误类型。

除显式释放外，任何错误都不会终止与 core 的重连循环。
"""

from typing import Any


class BridgeError(Exception):
    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConnectionError(BridgeError):
    """套接字打开/关闭/传输失败，由重连循环恢复。"""

    def __init__(self, message: str):
        super().__init__("connection_error", message)


class DecodeError(BridgeError):
    """无法解析的 JSON 帧，该帧被丢弃。"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__("decode_error", message, details)


class UnknownElementType(BridgeError):
    """core 发来了未知类型的消息元素。"""

    def __init__(self, element_type: Any):
        super().__init__(
            "unknown_element_type",
            f"未知的消息类型：{element_type}",
            {"type": element_type},
        )
        self.element_type = element_type


class AttachmentFetchError(BridgeError):
    """附件下载或解码失败，该元素被丢弃。"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__("attachment_fetch_error", message, details)


class RoutingError(BridgeError):
    """入站消息找不到对应的机器人账号。"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__("routing_error", message, details)
