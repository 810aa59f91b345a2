"""宿主聊天平台的接口。"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import httpx
from loguru import logger

from gsuid_bridge.platform.segment import Segment


class Bot(ABC):
    """
    宿主平台上的一个机器人账号。

    每个平台适配器（QQ、Discord 等）都应实现此接口，桥通过它把 core 的回复发回去。
    """

    def __init__(self, platform: str, self_id: str):
        self.platform = platform
        self.self_id = self_id

    @property
    def sid(self) -> str:
        """机器人在平台注册表中的键。"""
        return f"{self.platform}:{self.self_id}"

    @abstractmethod
    async def send_message(
        self,
        channel_id: str,
        content: list[Segment],
        guild_id: str | None = None,
    ) -> None:
        """
        向群组/频道发送消息。

        参数:
            channel_id: 目标频道 ID。
            content: 要发送的元素。
            guild_id: 频道所属的群组 ID。
        """
        pass

    @abstractmethod
    async def send_private_message(self, user_id: str, content: list[Segment]) -> None:
        """向用户发送私聊消息。"""
        pass


@dataclass
class ChannelInfo:
    """平台事件中的频道描述。type 为 0 表示文字频道，1 表示私聊。"""

    id: str | None = None
    type: int | None = None


@dataclass
class Session:
    """
    一次平台消息事件。

    只保留桥需要的字段：会话身份、消息 ID、作者角色和元素列表。
    """

    platform: str
    self_id: str
    user_id: str | None
    channel_id: str | None = None
    guild_id: str | None = None
    message_id: str | None = None
    subtype: str | None = None  # group、private、channel、sub_channel
    subsubtype: str | None = None
    channel: ChannelInfo | None = None
    author_roles: list[str] = field(default_factory=list)
    elements: list[Segment] | None = field(default_factory=list)
    bot: Bot | None = None

    @property
    def is_direct(self) -> bool:
        if self.channel_id and self.channel_id.startswith("private:"):
            return True
        return self.subtype == "private"

    @property
    def is_private_channel(self) -> bool:
        """私聊频道的 ID 以 private: 开头。"""
        return bool(self.channel_id and self.channel_id.startswith("private:"))

    async def send(self, content: list[Segment]) -> None:
        """回复到此会话所在的对话。"""
        if self.bot is None:
            logger.warning(f"会话 {self.message_id} 没有关联的机器人，无法回复")
            return

        if self.is_direct:
            await self.bot.send_private_message(self.user_id or "", content)
        else:
            await self.bot.send_message(self.channel_id or "", content, self.guild_id)


class Platform(ABC):
    """
    宿主平台运行时。

    提供机器人注册表、用户权限查询和按 URL 下载文件的能力。
    """

    def __init__(self) -> None:
        self.bots: dict[str, Bot] = {}

    def add_bot(self, bot: Bot) -> None:
        self.bots[bot.sid] = bot

    def get_bot(self, platform: str, self_id: str) -> Bot | None:
        """按平台和账号获取机器人。"""
        return self.bots.get(f"{platform}:{self_id}")

    async def get_user_authority(self, platform: str, user_id: str | None) -> int | None:
        """
        查询用户的权限等级。

        默认没有数据库，返回 None。
        """
        return None

    async def fetch_file(self, url: str) -> bytes:
        """
        下载文件内容。

        异常:
            httpx.HTTPError: 如果请求失败。
        """
        async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.content
