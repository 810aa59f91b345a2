"""终端平台：在命令行里与 gsuid-core 对话。"""

import uuid

from rich.console import Console
from rich.markup import escape

from gsuid_bridge.platform.base import Bot, ChannelInfo, Platform, Session
from gsuid_bridge.platform.segment import Segment

CONSOLE_PLATFORM = "console"


class ConsoleBot(Bot):
    """把 core 的回复打印到终端。"""

    def __init__(self, console: Console, self_id: str = "console"):
        super().__init__(CONSOLE_PLATFORM, self_id)
        self.console = console

    async def send_message(
        self,
        channel_id: str,
        content: list[Segment],
        guild_id: str | None = None,
    ) -> None:
        self._print(f"#{channel_id}", content)

    async def send_private_message(self, user_id: str, content: list[Segment]) -> None:
        self._print(f"@{user_id}", content)

    def _print(self, target: str, content: list[Segment]) -> None:
        for segment in content:
            if segment.type == "passive":
                continue
            if segment.type in ("img", "image"):
                self.console.print(f"[dim]{target}[/dim] [cyan][图片][/cyan] {segment.attrs.get('src')}")
            elif segment.type == "custom-file":
                self.console.print(
                    f"[dim]{target}[/dim] [cyan][文件][/cyan] "
                    f"{segment.attrs.get('name')} -> {segment.attrs.get('location')}"
                )
            else:
                self.console.print(f"[dim]{target}[/dim]", escape(segment.plain_text()))


class ConsolePlatform(Platform):
    """
    只有一个机器人和一个用户的平台。

    用户在终端中的每一行输入都是一条私聊消息。
    """

    def __init__(self, console: Console, user_id: str = "console-user", authority: int | None = None):
        super().__init__()
        self.bot = ConsoleBot(console)
        self.add_bot(self.bot)
        self.user_id = user_id
        self.authority = authority

    async def get_user_authority(self, platform: str, user_id: str | None) -> int | None:
        return self.authority

    def make_session(self, text: str) -> Session:
        """把一行输入包装成会话。"""
        return Session(
            platform=CONSOLE_PLATFORM,
            self_id=self.bot.self_id,
            user_id=self.user_id,
            channel_id=f"private:{self.user_id}",
            message_id=str(uuid.uuid4()),
            channel=ChannelInfo(id=f"private:{self.user_id}", type=1),
            elements=[Segment.text(text)],
            bot=self.bot,
        )
