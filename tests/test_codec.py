"""单元素编解码的测试。"""

import base64
import hashlib
from pathlib import Path

import pytest

from gsuid_bridge.bus.events import Element
from gsuid_bridge.codec.elements import NODE_NICKNAME, ElementCodec
from gsuid_bridge.errors import AttachmentFetchError, UnknownElementType
from gsuid_bridge.platform.segment import Segment

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake image body"


def test_text_round_trip(codec):
    segment = Segment.text("你好")
    assert codec.from_wire(codec.to_wire(segment), None) == segment


def test_at_round_trip(codec):
    segment = Segment.at("12345")
    wire = codec.to_wire(segment)
    assert wire == Element("at", "12345")
    assert codec.from_wire(wire, None) == segment


def test_reply_round_trip_keeps_payload(codec):
    wire = codec.to_wire(Segment.quote("q-9"))
    assert wire == Element("reply", "q-9")

    rendered = codec.from_wire(wire, "ctx-1")
    assert rendered.type == ""
    quote, text = rendered.children
    assert quote == Segment("quote", {"id": "ctx-1"})
    assert text.attrs["content"] == "q-9"


def test_outbound_images_carry_source_verbatim(codec):
    assert codec.to_wire(Segment("img", {"src": "http://x/a.png"})) == Element("img", "http://x/a.png")
    assert codec.to_wire(Segment("image", {"url": "http://x/b.png"})) == Element("image", "http://x/b.png")


def test_outbound_unknown_segment_is_dropped(codec):
    assert codec.to_wire(Segment("face", {"id": "1"})) is None


def test_link_image(codec):
    rendered = codec.from_wire(Element("image", "link://http://x/y.png"), None)
    assert rendered == Segment("img", {"src": "http://x/y.png"})


def test_bare_image_uses_data_as_url(codec):
    rendered = codec.from_wire(Element("image", "http://x/z.png"), None)
    assert rendered == Segment("img", {"src": "http://x/z.png"})


def test_image_tag_option(assets):
    codec = ElementCodec(assets, img_type="image")
    rendered = codec.from_wire(Element("image", "link://http://x/y.png"), None)
    assert rendered == Segment("image", {"url": "http://x/y.png", "src": "http://x/y.png"})


def test_base64_image_is_persisted(codec, config):
    payload = base64.b64encode(PNG_BYTES).decode()
    rendered = codec.from_wire(Element("image", f"base64://{payload}"), None)

    url = rendered.attrs["src"]
    file_name = url.rsplit("/", 1)[1]
    assert url == f"http://bot.example:5140/files/{file_name}"
    assert hashlib.sha1(PNG_BYTES).hexdigest()[:8] in file_name
    assert (config.assets_path / file_name).read_bytes() == PNG_BYTES


def test_inbound_file_is_stored(codec, config):
    payload = base64.b64encode(b"report body").decode()
    rendered = codec.from_wire(Element("file", f"report.txt|{payload}"), None)

    assert rendered.type == "custom-file"
    assert rendered.attrs["name"] == "report.txt"
    location = Path(rendered.attrs["location"])
    assert location.parent == config.data_path.resolve()
    assert location.read_bytes() == b"report body"


def test_inbound_file_with_bad_base64_raises(codec):
    with pytest.raises(AttachmentFetchError):
        codec.from_wire(Element("file", "a.txt|@@not base64@@"), None)


def test_node_as_figure(codec):
    node = Element("node", [{"type": "text", "data": t} for t in ("a", "b", "c")])
    rendered = codec.from_wire(node, "m-1")

    assert rendered.type == "figure"
    assert len(rendered.children) == 3
    for child, text in zip(rendered.children, "abc"):
        assert child.type == "message"
        assert child.attrs == {"nickname": NODE_NICKNAME}
        assert child.children == [Segment.text(text)]


def test_node_flattened(assets):
    codec = ElementCodec(assets, figure_support=False)
    node = Element("node", [{"type": "text", "data": t} for t in ("a", "b", "c")])
    assert codec.from_wire(node, None) == [Segment.text("a"), Segment.text("b"), Segment.text("c")]


def test_nested_node_is_rendered_recursively(codec):
    inner = {"type": "node", "data": [{"type": "at", "data": "7"}]}
    rendered = codec.from_wire(Element("node", [inner]), None)
    nested = rendered.children[0].children[0]
    assert nested.type == "figure"
    assert nested.children[0].children == [Segment.at("7")]


def test_group_element_is_not_rendered(codec):
    assert codec.from_wire(Element("group", "sub-1"), None) is None


def test_unknown_type_raises(codec):
    with pytest.raises(UnknownElementType) as exc:
        codec.from_wire(Element("bogus", None), None)
    assert exc.value.element_type == "bogus"
    assert exc.value.code == "unknown_element_type"


BROKEN_NODE = [{"type": "text", "data": "a"}, {"type": "bogus"}, {"type": "text", "data": "b"}]


def test_bad_node_child_keeps_siblings_in_figure(codec):
    rendered = codec.from_wire(Element("node", BROKEN_NODE), None)
    assert [child.children for child in rendered.children] == [[Segment.text("a")], [Segment.text("b")]]


def test_bad_node_child_keeps_siblings_when_flattened(assets):
    codec = ElementCodec(assets, figure_support=False)
    assert codec.from_wire(Element("node", BROKEN_NODE), None) == [Segment.text("a"), Segment.text("b")]


def test_base64_without_padding_or_with_line_breaks(codec, config):
    rendered = codec.from_wire(Element("image", "base64://YWJjZA"), None)
    file_name = rendered.attrs["src"].rsplit("/", 1)[1]
    assert (config.assets_path / file_name).read_bytes() == b"abcd"

    rendered = codec.from_wire(Element("file", "a.txt|YWJj\nZGVm\n"), None)
    assert Path(rendered.attrs["location"]).read_bytes() == b"abcdef"
