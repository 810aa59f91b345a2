"""平台元素与 core 协议元素之间的单元素转换。"""

from typing import Any, Callable

from loguru import logger

from gsuid_bridge.bus.events import Element
from gsuid_bridge.codec.assets import AssetStore
from gsuid_bridge.errors import BridgeError, UnknownElementType
from gsuid_bridge.platform.segment import Segment

LINK_PREFIX = "link://"
BASE64_PREFIX = "base64://"

# 合并转发中每条消息显示的昵称
NODE_NICKNAME = "小助手"

Rendered = Segment | list[Segment] | None


class ElementCodec:
    """
    单个消息元素的编解码器。

    出站方向只转换能识别的平台元素，其余返回 None；入站方向遇到未知类型抛出
    UnknownElementType，由调用方逐个元素捕获。
    """

    def __init__(self, assets: AssetStore, img_type: str = "img", figure_support: bool = True):
        self.assets = assets
        self.img_type = img_type
        self.figure_support = figure_support
        self._decoders: dict[str, Callable[[Any, str | None], Rendered]] = {
            "text": self._decode_text,
            "image": self._decode_image,
            "at": self._decode_at,
            "reply": self._decode_reply,
            "file": self._decode_file,
            "node": self._decode_node,
            "group": self._decode_group,
        }

    # 出站

    def to_wire(self, segment: Segment) -> Element | None:
        """
        将平台元素转换为 core 元素。

        file 元素需要下载，由转码器单独处理。
        """
        attrs = segment.attrs
        if segment.type == "text":
            return Element("text", attrs.get("content"))
        if segment.type == "at":
            return Element("at", attrs.get("id"))
        if segment.type == "img":
            return Element("img", attrs.get("src"))
        if segment.type == "image":
            return Element("image", attrs.get("url"))
        if segment.type == "quote":
            return Element("reply", attrs.get("id"))
        return None

    # 入站

    def from_wire(self, element: Element, message_id: str | None) -> Rendered:
        """
        将 core 元素渲染为平台元素。

        参数:
            element: core 元素。
            message_id: 回复引用使用的消息 ID。

        返回:
            单个元素、元素列表（不支持合并转发时的 node），或 None（不可渲染）。

        异常:
            UnknownElementType: 如果元素类型未知。
        """
        decoder = self._decoders.get(element.type)
        if decoder is None:
            raise UnknownElementType(element.type)
        return decoder(element.data, message_id)

    def _decode_text(self, data: Any, message_id: str | None) -> Segment:
        return Segment.text(data)

    def _decode_at(self, data: Any, message_id: str | None) -> Segment:
        return Segment.at(data)

    def _decode_reply(self, data: Any, message_id: str | None) -> Segment:
        return Segment.fragment(Segment.quote(message_id), Segment.text(data))

    def _decode_image(self, data: Any, message_id: str | None) -> Segment:
        data = str(data)
        if data.startswith(LINK_PREFIX):
            url = data[len(LINK_PREFIX):]
        elif data.startswith(BASE64_PREFIX):
            url = self.assets.save_image(data[len(BASE64_PREFIX):])
        else:
            url = data
        return self._image(url)

    def _image(self, url: str) -> Segment:
        if self.img_type == "img":
            return Segment("img", {"src": url})
        return Segment("image", {"url": url, "src": url})

    def _decode_file(self, data: Any, message_id: str | None) -> Segment:
        name, _, payload = str(data).partition("|")
        location = self.assets.save_file(payload)
        return Segment("custom-file", {"name": name, "location": str(location)})

    def _decode_node(self, data: Any, message_id: str | None) -> Segment | list[Segment]:
        items = [Element.from_dict(item) for item in data or []]
        if self.figure_support:
            figure = Segment("figure")
            for item in items:
                children = self._decode_child(item, message_id)
                if children:
                    figure.children.append(Segment("message", {"nickname": NODE_NICKNAME}, children))
            return figure

        flat: list[Segment] = []
        for item in items:
            flat.extend(self._decode_child(item, message_id))
        return flat

    def _decode_child(self, item: Element, message_id: str | None) -> list[Segment]:
        # 合并转发中单条消息失败时只跳过这一条
        try:
            return _as_list(self.from_wire(item, message_id))
        except (BridgeError, TypeError, ValueError, OSError) as e:
            logger.error(f"解析合并转发中的元素失败：{e}")
            return []

    def _decode_group(self, data: Any, message_id: str | None) -> None:
        # 只携带频道 ID，供路由使用
        return None


def _as_list(rendered: Rendered) -> list[Segment]:
    if rendered is None:
        return []
    if isinstance(rendered, list):
        return rendered
    return [rendered]
