"""桥：连接宿主平台与 gsuid-core。"""

import asyncio
from typing import Any

from loguru import logger

from gsuid_bridge.codec.assets import AssetStore
from gsuid_bridge.codec.elements import ElementCodec
from gsuid_bridge.codec.transcoder import MessageTranscoder
from gsuid_bridge.config.schema import BridgeConfig
from gsuid_bridge.core.client import CoreClient
from gsuid_bridge.core.correlation import BridgeState, CorrelationRegistry, PendingReply
from gsuid_bridge.core.router import InboundRouter
from gsuid_bridge.platform.base import Platform, Session


class GsuidBridge:
    """
    一个插件实例。

    职责：
    - 平台就绪后连接 gsuid-core
    - 把平台消息转发给 core，并记录消息 ID 以便关联回复
    - 把 core 的消息路由回平台
    - 释放时停止重连并清理状态
    """

    def __init__(self, platform: Platform, config: BridgeConfig):
        self.platform = platform
        self.config = config
        self.state = BridgeState(registry=CorrelationRegistry(timeout=config.reply_timeout))

        assets = AssetStore(config.data_path, config.files_base_url)
        codec = ElementCodec(assets, img_type=config.img_type, figure_support=config.figure_support)
        self.transcoder = MessageTranscoder(platform, codec)
        self.router = InboundRouter(config, platform, self.transcoder, self.state)
        self.client = CoreClient(config, on_envelope=self.router.handle)
        self._reply_tasks: set[asyncio.Task] = set()

    async def start(self) -> None:
        """启动与 core 的连接（在后台运行）。"""
        logger.info(f"gsuid-bridge 正在启动，core 地址：{self.config.ws_url}")
        self.client.start()

    async def handle_session(self, session: Session) -> None:
        """
        处理一条平台消息。

        参数:
            session: 平台消息事件。
        """
        if self.config.dev:
            for segment in session.elements or []:
                logger.debug(f"元素：{segment}")
            logger.debug(f"会话：{session}")

        envelope = await self.transcoder.encode(session)
        sent = await self.client.send(envelope)

        if not session.message_id:
            return

        key = session.user_id if session.is_direct else session.channel_id
        if key:
            self.state.last_message_ids.record(key, session.message_id)

        # 消息没有送达 core，不会有回复
        if not sent:
            return

        pending = self.state.registry.register(session.message_id, session)
        task = asyncio.create_task(self._reply_when_ready(pending))
        self._reply_tasks.add(task)
        task.add_done_callback(self._reply_tasks.discard)

    async def _reply_when_ready(self, pending: PendingReply) -> None:
        content = await pending.wait()
        if content is None:
            return
        try:
            await pending.session.send(content)
        except Exception as e:
            logger.error(f"回复会话 {pending.message_id} 时出错：{e}")

    async def dispose(self) -> None:
        """停止连接和所有等待中的回复。"""
        logger.info("正在停止 gsuid-bridge...")
        await self.client.dispose()
        self.state.clear()

        for task in list(self._reply_tasks):
            task.cancel()
        if self._reply_tasks:
            await asyncio.gather(*self._reply_tasks, return_exceptions=True)

    def get_status(self) -> dict[str, Any]:
        """获取桥的运行状态。"""
        return {
            "url": self.client.url,
            "state": self.client.state.value,
            "attempts": self.client.attempts,
            **self.state.status(),
        }
