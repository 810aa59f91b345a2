"""平台会话与 core 信封之间的整条消息转换。"""

import base64

from loguru import logger

from gsuid_bridge.bus.events import Element, InboundEnvelope, OutboundEnvelope
from gsuid_bridge.codec.elements import ElementCodec, Rendered
from gsuid_bridge.errors import AttachmentFetchError, BridgeError
from gsuid_bridge.platform.base import Platform, Session
from gsuid_bridge.platform.segment import Segment

# subsubtype 存在时 subtype 到 core 会话类型的映射
SUBTYPE_MAP = {
    "group": "group",
    "private": "direct",
    "channel": "channel",
    "sub_channel": "sub_channel",
}

# 权限等级：数值越小权限越高，必须与 core 保持一致
PM_ADMIN = 3
PM_OWNER = 2
PM_DEFAULT = 6


class MessageTranscoder:
    """
    将平台会话编码为出站信封，将入站信封解码为平台元素。
    """

    def __init__(self, platform: Platform, codec: ElementCodec):
        self.platform = platform
        self.codec = codec

    async def encode(self, session: Session) -> OutboundEnvelope:
        """构建发往 core 的信封。"""
        return OutboundEnvelope(
            bot_id=session.platform,
            bot_self_id=session.self_id,
            msg_id=session.message_id,
            user_type=gen_user_type(session),
            group_id=None if session.is_private_channel else session.channel_id,
            user_id=session.user_id,
            user_pm=await self.gen_user_permission(session),
            content=tuple(await self.gen_content(session)),
        )

    async def gen_user_permission(self, session: Session) -> int:
        """
        计算用户的权限等级。

        数据库中权限 >= 4 的用户映射为 max(6 - authority, 1)；
        否则私聊频道中 admin 为 3、owner 为 2，其余一律为 6。
        """
        authority = await self.platform.get_user_authority(session.platform, session.user_id)
        if authority is not None and authority >= 4:
            return max(PM_DEFAULT - authority, 1)

        if session.is_private_channel:
            if "admin" in session.author_roles:
                return PM_ADMIN
            if "owner" in session.author_roles:
                return PM_OWNER
        return PM_DEFAULT

    async def gen_content(self, session: Session) -> list[Element]:
        """提取可识别的元素，其余元素直接忽略。"""
        if session.elements is None:
            return []

        content: list[Element] = []
        for segment in session.elements:
            if segment.type == "file":
                try:
                    content.append(await self.encode_file(segment))
                except AttachmentFetchError as e:
                    logger.error(f"下载文件失败：{e}")
                continue

            element = self.codec.to_wire(segment)
            if element is not None:
                content.append(element)
        return content

    async def encode_file(self, segment: Segment) -> Element:
        """
        下载文件并编码为 "<name>|<base64>"。

        异常:
            AttachmentFetchError: 如果下载失败。
        """
        url = segment.attrs.get("url")
        name = segment.attrs.get("name", "")
        if not url:
            raise AttachmentFetchError(f"文件 {name} 没有 URL")
        try:
            data = await self.platform.fetch_file(url)
        except Exception as e:
            raise AttachmentFetchError(f"{url}：{e}", {"url": url}) from e
        return Element("file", f"{name}|{base64.b64encode(data).decode('ascii')}")

    def decode(self, envelope: InboundEnvelope, message_id: str | None = None) -> list[Rendered]:
        """
        渲染 core 消息中的所有元素。

        单个元素失败只会记录日志并跳过，不影响其余元素。
        """
        rendered: list[Rendered] = []
        for element in envelope.content:
            try:
                result = self.codec.from_wire(element, message_id)
            except (BridgeError, TypeError, ValueError, OSError) as e:
                logger.error(f"解析 core 消息元素失败：{e}")
                continue
            if result is not None:
                rendered.append(result)
        return rendered


def gen_user_type(session: Session) -> str:
    """根据会话的 subtype 和频道描述推断 core 会话类型。"""
    if session.subsubtype:
        if session.subtype in SUBTYPE_MAP:
            return SUBTYPE_MAP[session.subtype]
        if session.channel is not None:
            return "channel"
        return "unknown"

    if session.channel is not None and session.channel.type is not None:
        if session.channel.type == 1:
            return "direct"
        return "channel"
    return "unknown"


def flatten(rendered: list[Rendered]) -> list[Segment]:
    """展开一层嵌套，得到顶层元素列表。"""
    flat: list[Segment] = []
    for item in rendered:
        if isinstance(item, list):
            flat.extend(item)
        elif item is not None:
            flat.append(item)
    return flat


def wrap_passive(segments: list[Segment], message_id: str) -> list[Segment]:
    """在元素前加上 passive 标记，携带消息上下文。"""
    return [Segment.passive(message_id), *segments]


def find_channel_id(envelope: InboundEnvelope) -> str | None:
    """查找 group 元素中携带的子频道 ID。"""
    for element in envelope.content:
        if element.type == "group":
            return element.data
    return None
