"""消息 ID 关联：把 core 的回复送回触发它的会话。"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from gsuid_bridge.platform.base import Session
from gsuid_bridge.platform.segment import Segment

DEFAULT_REPLY_TIMEOUT_S = 60.0


@dataclass
class PendingReply:
    """一个等待 core 回复的会话，只能被解决一次。"""

    message_id: str
    session: Session
    future: asyncio.Future
    timer: asyncio.TimerHandle | None = None

    @property
    def done(self) -> bool:
        return self.future.done()

    async def wait(self) -> list[Segment] | None:
        """等待回复内容，超时或被取消时返回 None。"""
        try:
            return await asyncio.shield(self.future)
        except asyncio.CancelledError:
            if self.future.cancelled():
                return None
            raise


class CorrelationRegistry:
    """
    出站消息 ID 到等待者的映射。

    每个 ID 同时最多一个条目；第一个 resolve 生效，之后的调用没有任何效果。
    条目到期后被静默丢弃，该 ID 的回复回退到普通投递。
    """

    def __init__(self, timeout: float = DEFAULT_REPLY_TIMEOUT_S):
        self.timeout = timeout
        self._pending: dict[str, PendingReply] = {}

    def register(self, message_id: str, session: Session, timeout: float | None = None) -> PendingReply:
        """
        为消息 ID 注册等待者。

        已存在的同 ID 条目会被取消并替换。
        """
        loop = asyncio.get_running_loop()

        old = self._pending.pop(message_id, None)
        if old is not None:
            self._discard(old)

        pending = PendingReply(message_id=message_id, session=session, future=loop.create_future())
        pending.timer = loop.call_later(
            self.timeout if timeout is None else timeout,
            self._expire,
            pending,
        )
        self._pending[message_id] = pending
        return pending

    def resolve(self, message_id: str, content: list[Segment]) -> bool:
        """
        用回复内容解决等待者。

        返回:
            如果有未解决的条目返回 True，否则返回 False。
        """
        pending = self._pending.pop(message_id, None)
        if pending is None or pending.done:
            return False

        if pending.timer:
            pending.timer.cancel()
        pending.future.set_result(content)
        return True

    def has(self, message_id: str | None) -> bool:
        """检查消息 ID 是否有未解决的条目。"""
        if not message_id:
            return False
        pending = self._pending.get(message_id)
        return pending is not None and not pending.done

    def clear(self) -> None:
        """取消所有条目。"""
        for pending in self._pending.values():
            self._discard(pending)
        self._pending.clear()

    def _expire(self, pending: PendingReply) -> None:
        if self._pending.get(pending.message_id) is pending:
            del self._pending[pending.message_id]
        if not pending.done:
            logger.debug(f"消息 {pending.message_id} 的回复等待已超时")
            pending.future.cancel()

    @staticmethod
    def _discard(pending: PendingReply) -> None:
        if pending.timer:
            pending.timer.cancel()
        if not pending.done:
            pending.future.cancel()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, message_id: str) -> bool:
        return self.has(message_id)


class LastMessageIds:
    """每个会话键（群组 ID 或用户 ID）最近一条平台消息的 ID。"""

    def __init__(self) -> None:
        self._ids: dict[str, str] = {}

    def record(self, key: str, message_id: str) -> None:
        self._ids[key] = message_id

    def get(self, key: str | None) -> str | None:
        if key is None:
            return None
        return self._ids.get(key)

    def clear(self) -> None:
        self._ids.clear()

    def __len__(self) -> int:
        return len(self._ids)


@dataclass
class BridgeState:
    """一个桥实例拥有的进程级状态。"""

    registry: CorrelationRegistry = field(default_factory=CorrelationRegistry)
    last_message_ids: LastMessageIds = field(default_factory=LastMessageIds)

    def clear(self) -> None:
        self.registry.clear()
        self.last_message_ids.clear()

    def status(self) -> dict[str, Any]:
        return {
            "pending_replies": len(self.registry),
            "tracked_conversations": len(self.last_message_ids),
        }
