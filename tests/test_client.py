"""与 core 连接生命周期的测试。"""

import asyncio
import json

import pytest
from conftest import FakeConnect, FakeSocket

from gsuid_bridge.bus.events import OutboundEnvelope
from gsuid_bridge.config.schema import BridgeConfig
from gsuid_bridge.core.client import ConnectionState, CoreClient, parse_frame
from gsuid_bridge.errors import DecodeError


def make_client(on_envelope=None, **options) -> CoreClient:
    config = BridgeConfig(**options)
    return CoreClient(config, on_envelope=on_envelope)


ROUTED = json.dumps({
    "bot_id": "qq",
    "bot_self_id": "10000",
    "msg_id": "m-1",
    "target_type": "group",
    "target_id": "group-1",
    "content": [{"type": "text", "data": "hi"}],
})
LOG = json.dumps({"bot_id": "qq", "target_id": None, "content": [{"data": "core 已启动"}]})


def test_endpoint_url():
    client = make_client(is_wss=True, host="core.example", port=9000, ws_path="ws", bot_id="koishi")
    assert client.url == "wss://core.example:9000/ws/koishi"
    assert make_client().url == "ws://localhost:8765/ws/koishi"


def test_parse_frame_rejects_bad_json():
    with pytest.raises(DecodeError):
        parse_frame("{not json")
    with pytest.raises(DecodeError):
        parse_frame(b"[1, 2]")


def test_parse_frame_accepts_bytes():
    envelope = parse_frame(ROUTED.encode("utf-8"))
    assert envelope.target_id == "group-1"
    assert envelope.msg_id == "m-1"
    assert parse_frame(LOG).is_log


@pytest.mark.asyncio
async def test_reconnects_after_fixed_interval_until_disposed():
    client = make_client(reconnect_interval=5)
    client._connect = FakeConnect(OSError("connection refused"))
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)
        if len(sleeps) == 3:
            await client.dispose()

    client._sleep = fake_sleep
    await client.run()

    assert sleeps == [5, 5, 5]
    assert client.attempts == 3
    assert client.state == ConnectionState.DISPOSED
    assert client.last_error is not None
    assert client.last_error.code == "connection_error"


@pytest.mark.asyncio
async def test_reconnects_after_clean_close():
    socket = FakeSocket()
    connect = FakeConnect(socket)
    client = make_client(reconnect_interval=1.5)
    client._connect = connect
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)
        if len(sleeps) == 2:
            await client.dispose()

    client._sleep = fake_sleep
    await client.run()

    assert connect.urls == ["ws://localhost:8765/ws/koishi"] * 2
    assert sleeps == [1.5, 1.5]


@pytest.mark.asyncio
async def test_frames_are_routed_or_logged():
    received = []

    async def on_envelope(envelope):
        received.append(envelope)

    socket = FakeSocket([LOG, "{broken", ROUTED, json.dumps([1])])
    client = make_client(on_envelope=on_envelope)
    client._connect = FakeConnect(socket)

    async def fake_sleep(delay):
        await client.dispose()

    client._sleep = fake_sleep
    await client.run()

    assert len(received) == 1
    assert received[0].target_id == "group-1"
    assert received[0].content[0].data == "hi"


@pytest.mark.asyncio
async def test_handler_errors_do_not_break_the_loop():
    calls = []

    async def on_envelope(envelope):
        calls.append(envelope)
        raise RuntimeError("router exploded")

    client = make_client(on_envelope=on_envelope)
    client._connect = FakeConnect(FakeSocket([ROUTED, ROUTED]))

    async def fake_sleep(delay):
        await client.dispose()

    client._sleep = fake_sleep
    await client.run()

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_send_while_connected():
    socket = FakeSocket([ROUTED])
    client = make_client()
    client._connect = FakeConnect(socket)
    envelope = OutboundEnvelope(
        bot_id="qq", bot_self_id="10000", msg_id="m-2", user_type="group", user_id="42", user_pm=6,
        group_id="group-1",
    )
    results = []

    async def on_envelope(_):
        results.append(await client.send(envelope))

    client.on_envelope = on_envelope

    async def fake_sleep(delay):
        await client.dispose()

    client._sleep = fake_sleep
    await client.run()

    assert results == [True]
    assert json.loads(socket.sent[0].decode("utf-8"))["msg_id"] == "m-2"


@pytest.mark.asyncio
async def test_send_while_disconnected_is_dropped():
    client = make_client()
    envelope = OutboundEnvelope(bot_id="qq", bot_self_id="1", msg_id=None, user_type="unknown", user_id="1", user_pm=6)
    assert await client.send(envelope) is False


@pytest.mark.asyncio
async def test_dispose_while_waiting_to_reconnect():
    client = make_client()
    client._connect = FakeConnect(OSError("refused"))
    sleeping = asyncio.Event()

    async def blocking_sleep(delay):
        sleeping.set()
        await asyncio.Event().wait()

    client._sleep = blocking_sleep
    task = client.start()
    await asyncio.wait_for(sleeping.wait(), timeout=1)

    await client.dispose()
    await client.dispose()

    assert task.done()
    assert client.attempts == 1
    assert client.start() is None


@pytest.mark.asyncio
async def test_dispose_while_connected_closes_socket():
    socket = FakeSocket(stay_open=True)
    client = make_client()
    client._connect = FakeConnect(socket)
    client.start()

    for _ in range(100):
        if client.connected:
            break
        await asyncio.sleep(0)
    assert client.connected

    await client.dispose()

    assert socket.closed.is_set()
    assert client.attempts == 1
    assert client.state == ConnectionState.DISPOSED
    assert not client.connected
