"""与 gsuid-core 交换的消息信封类型。"""

from dataclasses import dataclass, field
from typing import Any

from gsuid_bridge.errors import DecodeError


@dataclass
class Element:
    """core 协议中的一个消息元素。"""

    type: str  # text、image、at、reply、file、node、group
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.data}

    @classmethod
    def from_dict(cls, raw: Any) -> "Element":
        if not isinstance(raw, dict):
            return cls(type=str(raw), data=None)
        return cls(type=raw.get("type"), data=raw.get("data"))


@dataclass(frozen=True)
class OutboundEnvelope:
    """发往 core 的消息。每个平台事件创建一次，之后不再修改。"""

    bot_id: str  # 平台名称
    bot_self_id: str
    msg_id: str | None
    user_type: str  # group、direct、channel、sub_channel、unknown
    user_id: str | None
    user_pm: int
    group_id: str | None = None  # 私聊时为空
    content: tuple[Element, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "bot_id": self.bot_id,
            "bot_self_id": self.bot_self_id,
            "msg_id": self.msg_id,
            "user_type": self.user_type,
            "group_id": self.group_id,
            "user_id": self.user_id,
            "user_pm": self.user_pm,
            "content": [e.to_dict() for e in self.content],
        }


@dataclass
class InboundEnvelope:
    """从 core 收到的消息。"""

    bot_id: str
    bot_self_id: str
    target_type: str | None
    target_id: str | None  # 为空时表示日志消息
    msg_id: str | None = None
    content: list[Element] = field(default_factory=list)

    @property
    def is_log(self) -> bool:
        """没有目标 ID 的帧是 core 的日志。"""
        return self.target_id is None

    @classmethod
    def from_dict(cls, raw: Any) -> "InboundEnvelope":
        """
        从解析后的 JSON 构建信封。

        异常:
            DecodeError: 如果帧不是 JSON 对象或 content 不是数组。
        """
        if not isinstance(raw, dict):
            raise DecodeError(f"core 消息不是 JSON 对象：{type(raw).__name__}")

        content = raw.get("content") or []
        if not isinstance(content, list):
            raise DecodeError("core 消息的 content 不是数组", {"content": content})

        target_id = raw.get("target_id")
        return cls(
            bot_id=str(raw.get("bot_id", "")),
            bot_self_id=str(raw.get("bot_self_id", "")),
            target_type=raw.get("target_type"),
            target_id=str(target_id) if target_id is not None else None,
            msg_id=raw.get("msg_id") or None,
            content=[Element.from_dict(item) for item in content],
        )
