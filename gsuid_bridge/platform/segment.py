"""平台侧的富消息元素。"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Segment:
    """
    平台消息元素：类型、属性和子元素。

    type 为空字符串时表示一个只用于分组的片段。
    """

    type: str
    attrs: dict[str, Any] = field(default_factory=dict)
    children: list["Segment"] = field(default_factory=list)

    @classmethod
    def text(cls, content: Any) -> "Segment":
        return cls("text", {"content": "" if content is None else str(content)})

    @classmethod
    def at(cls, user_id: Any) -> "Segment":
        return cls("at", {"id": str(user_id)})

    @classmethod
    def quote(cls, message_id: Any) -> "Segment":
        return cls("quote", {"id": message_id})

    @classmethod
    def passive(cls, message_id: str) -> "Segment":
        return cls("passive", {"messageId": message_id})

    @classmethod
    def fragment(cls, *children: "Segment") -> "Segment":
        return cls("", {}, list(children))

    def plain_text(self) -> str:
        """递归提取文本内容，用于日志和终端显示。"""
        if self.type == "text":
            return self.attrs.get("content", "")
        return "".join(child.plain_text() for child in self.children)

    def __str__(self) -> str:
        if self.type == "text":
            return self.attrs.get("content", "")
        attrs = "".join(f" {k}={v!r}" for k, v in self.attrs.items())
        inner = "".join(str(c) for c in self.children)
        return f"<{self.type}{attrs}>{inner}</{self.type}>"
