"""core 消息的入站路由。"""

from loguru import logger

from gsuid_bridge.bus.events import InboundEnvelope
from gsuid_bridge.codec.transcoder import MessageTranscoder, find_channel_id, flatten, wrap_passive
from gsuid_bridge.config.schema import BridgeConfig
from gsuid_bridge.core.correlation import BridgeState
from gsuid_bridge.errors import RoutingError
from gsuid_bridge.platform.base import Bot, Platform
from gsuid_bridge.platform.segment import Segment


class InboundRouter:
    """
    决定每条 core 消息的去向。

    如果消息 ID 有等待中的会话，就把内容交给该会话；否则按 target_type 和
    target_id 直接发送到群组、私聊或频道。
    """

    def __init__(
        self,
        config: BridgeConfig,
        platform: Platform,
        transcoder: MessageTranscoder,
        state: BridgeState,
    ):
        self.config = config
        self.platform = platform
        self.transcoder = transcoder
        self.state = state

    async def handle(self, envelope: InboundEnvelope) -> None:
        """处理一条带目标的 core 消息。"""
        try:
            bot = self._get_bot(envelope)
        except RoutingError as e:
            logger.debug(f"忽略 core 消息：{e}")
            return

        msg_id = self.resolve_message_id(envelope)
        rendered = flatten(self.transcoder.decode(envelope, msg_id))
        if not rendered:
            logger.debug(f"core 消息没有可发送的内容：{envelope.target_type}:{envelope.target_id}")
            return

        if self.config.figure_support:
            await self._route(bot, envelope, msg_id, self._wrap(rendered, msg_id))
        else:
            for segment in rendered:
                if self.config.dev:
                    logger.debug(f"逐条发送，消息 ID：{msg_id}")
                await self._route(bot, envelope, msg_id, self._wrap([segment], msg_id))

    def resolve_message_id(self, envelope: InboundEnvelope) -> str | None:
        """core 没有返回消息 ID 时，按配置回退到该会话最后一条消息的 ID。"""
        if envelope.msg_id:
            return envelope.msg_id
        if self.config.use_last_message_id:
            return self.state.last_message_ids.get(envelope.target_id)
        return None

    def _get_bot(self, envelope: InboundEnvelope) -> Bot:
        bot = self.platform.get_bot(envelope.bot_id, envelope.bot_self_id)
        if bot is None:
            raise RoutingError(
                f"没有对应的机器人 {envelope.bot_id}:{envelope.bot_self_id}",
                {"bot_id": envelope.bot_id, "bot_self_id": envelope.bot_self_id},
            )
        return bot

    def _wrap(self, segments: list[Segment], msg_id: str | None) -> list[Segment]:
        if msg_id and self.config.passive:
            return wrap_passive(segments, msg_id)
        return segments

    async def _route(
        self,
        bot: Bot,
        envelope: InboundEnvelope,
        msg_id: str | None,
        content: list[Segment],
    ) -> None:
        if msg_id and self.state.registry.resolve(msg_id, content):
            logger.debug(f"core 回复已交给等待中的会话 {msg_id}")
            return

        try:
            await self.deliver(bot, envelope, content)
        except Exception as e:
            logger.error(f"发送到 {envelope.target_type}:{envelope.target_id} 时出错：{e}")

    async def deliver(self, bot: Bot, envelope: InboundEnvelope, content: list[Segment]) -> None:
        """按 target_type 直接发送。"""
        target_id = envelope.target_id or ""
        if envelope.target_type == "group":
            await bot.send_message(target_id, content, target_id)
        elif envelope.target_type == "direct":
            await bot.send_private_message(target_id, content)
        elif envelope.target_type == "channel":
            channel_id = find_channel_id(envelope) or target_id
            await bot.send_message(channel_id, content, target_id)
        else:
            logger.warning(f"未知的目标类型：{envelope.target_type}")
