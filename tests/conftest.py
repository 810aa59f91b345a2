"""测试用的平台、机器人和 WebSocket 替身。"""

import asyncio

import pytest

from gsuid_bridge.codec.assets import AssetStore
from gsuid_bridge.codec.elements import ElementCodec
from gsuid_bridge.codec.transcoder import MessageTranscoder
from gsuid_bridge.config.schema import BridgeConfig
from gsuid_bridge.platform.base import Bot, Platform, Session
from gsuid_bridge.platform.segment import Segment


class FakeBot(Bot):
    def __init__(self, platform: str = "qq", self_id: str = "10000"):
        super().__init__(platform, self_id)
        self.sent: list[tuple[str, str, list[Segment], str | None]] = []

    async def send_message(self, channel_id, content, guild_id=None):
        self.sent.append(("channel", channel_id, content, guild_id))

    async def send_private_message(self, user_id, content):
        self.sent.append(("private", user_id, content, None))


class FakePlatform(Platform):
    def __init__(self, authority: int | None = None, files: dict[str, bytes] | None = None):
        super().__init__()
        self.authority = authority
        self.files = files or {}
        self.bot = FakeBot()
        self.add_bot(self.bot)

    async def get_user_authority(self, platform, user_id):
        return self.authority

    async def fetch_file(self, url):
        if url not in self.files:
            raise OSError(f"404 {url}")
        return self.files[url]


@pytest.fixture
def config(tmp_path) -> BridgeConfig:
    return BridgeConfig(data_dir=str(tmp_path / "data"), koishi_url="http://bot.example:5140/")


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def assets(config) -> AssetStore:
    return AssetStore(config.data_path, config.files_base_url)


@pytest.fixture
def codec(assets) -> ElementCodec:
    return ElementCodec(assets, img_type="img", figure_support=True)


@pytest.fixture
def transcoder(platform, codec) -> MessageTranscoder:
    return MessageTranscoder(platform, codec)


def make_session(platform: FakePlatform, **overrides) -> Session:
    fields = dict(
        platform="qq",
        self_id="10000",
        user_id="42",
        channel_id="group-1",
        guild_id="group-1",
        message_id="m-1",
        subtype="group",
        elements=[Segment.text("hello")],
        bot=platform.bot,
    )
    fields.update(overrides)
    return Session(**fields)


class FakeSocket:
    def __init__(self, frames=(), stay_open=False):
        self.frames = list(frames)
        self.stay_open = stay_open
        self.sent: list[bytes] = []
        self.closed = asyncio.Event()

    async def send(self, data):
        self.sent.append(data)

    async def close(self):
        self.closed.set()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield frame
        if self.stay_open:
            await self.closed.wait()


class _Connection:
    def __init__(self, outcome):
        self.outcome = outcome

    async def __aenter__(self):
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    async def __aexit__(self, *exc):
        return False


class FakeConnect:
    """每次连接依次返回一个结果，最后一个会一直重复。"""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.urls: list[str] = []

    def __call__(self, url, **kwargs):
        self.urls.append(url)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        return _Connection(outcome)
