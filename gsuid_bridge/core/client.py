"""与 gsuid-core 的 WebSocket 连接。"""

import asyncio
import json
from enum import Enum
from typing import Any, Awaitable, Callable

import websockets
from loguru import logger

from gsuid_bridge.bus.events import InboundEnvelope, OutboundEnvelope
from gsuid_bridge.config.schema import BridgeConfig
from gsuid_bridge.errors import ConnectionError, DecodeError
from gsuid_bridge.utils.helpers import truncate_string

EnvelopeHandler = Callable[[InboundEnvelope], Awaitable[None]]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISPOSED = "disposed"


class CoreClient:
    """
    到 gsuid-core 的持久连接。

    连接断开后按固定间隔无限重连，直到调用 dispose()。
    收到的帧解析为信封：没有 target_id 的是 core 日志，只记录；其余交给路由处理。
    """

    def __init__(self, config: BridgeConfig, on_envelope: EnvelopeHandler | None = None):
        self.config = config
        self.on_envelope = on_envelope
        self.reconnect_interval = config.reconnect_interval
        self.state = ConnectionState.DISCONNECTED
        self.attempts = 0
        self.last_error: ConnectionError | None = None
        self._ws: Any = None
        self._task: asyncio.Task | None = None
        self._disposed = False
        self._connect = websockets.connect
        self._sleep = asyncio.sleep

    @property
    def url(self) -> str:
        return self.config.ws_url

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED and self._ws is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def start(self) -> asyncio.Task | None:
        """在后台启动连接循环。"""
        if self._disposed:
            logger.warning("当前实例已释放，不再连接 gsuid-core")
            return None
        if self._task and not self._task.done():
            return self._task

        self._task = asyncio.create_task(self.run())
        return self._task

    async def run(self) -> None:
        """连接循环：连接、接收，断开后等待固定间隔再重连。"""
        while not self._disposed:
            self.state = ConnectionState.CONNECTING
            self.attempts += 1
            logger.info(f"正在连接 gsuid-core：{self.url}")

            try:
                async with self._connect(self.url, max_size=None) as ws:
                    self._ws = ws
                    self.state = ConnectionState.CONNECTED
                    logger.info(f"与[gsuid-core]成功连接! Bot_ID: {self.config.bot_id}")

                    async for raw in ws:
                        await self._handle_frame(raw)

                logger.error("与[gsuid-core]连接断开")
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.last_error = ConnectionError(f"{type(e).__name__}: {e}")
                logger.error(f"与[gsuid-core]连接时发生错误：{self.last_error}")
            finally:
                self._ws = None
                if not self._disposed:
                    self.state = ConnectionState.DISCONNECTED

            if self._disposed:
                break

            logger.info(f"自动连接core服务器失败...{self.reconnect_interval:g}秒后重新连接...")
            try:
                await self._sleep(self.reconnect_interval)
            except asyncio.CancelledError:
                break

        logger.info("已经重载实例或停用插件，当前实例不再自动重连")

    async def send(self, envelope: OutboundEnvelope) -> bool:
        """
        发送信封到 core。

        未连接时消息会被丢弃，不会排队。

        返回:
            如果已写入套接字返回 True。
        """
        if not self.connected:
            logger.warning(f"未连接到 gsuid-core，丢弃消息 {envelope.msg_id}")
            return False

        payload = json.dumps(envelope.to_dict(), ensure_ascii=False)
        try:
            await self._ws.send(payload.encode("utf-8"))
        except Exception as e:
            logger.error(f"发送消息到 gsuid-core 时出错：{e}")
            return False

        if self.config.dev:
            logger.debug(f"已发送：{truncate_string(payload, 500)}")
        return True

    async def dispose(self) -> None:
        """关闭连接并永久停止重连。可以重复调用。"""
        if self._disposed:
            return
        self._disposed = True
        self.state = ConnectionState.DISPOSED

        if self._ws is not None:
            try:
                await self._ws.close()
            except Exception as e:
                logger.warning(f"关闭 gsuid-core 连接时出错：{e}")

        task = self._task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _handle_frame(self, raw: str | bytes) -> None:
        if self.config.dev:
            logger.debug(f"收到：{truncate_string(str(raw), 500)}")

        try:
            envelope = parse_frame(raw)
        except DecodeError as e:
            logger.warning(f"来自 gsuid-core 的无效消息：{e}")
            return

        if envelope.is_log:
            for element in envelope.content:
                logger.info(f"收到[gsuid-core]日志消息: {element.data}")
            return

        if self.on_envelope is None:
            return

        try:
            await self.on_envelope(envelope)
        except Exception as e:
            logger.error(f"处理 gsuid-core 消息时出错：{e}")


def parse_frame(raw: str | bytes) -> InboundEnvelope:
    """
    解析一个 JSON 文本帧。

    异常:
        DecodeError: 如果帧不是合法的 JSON 或结构不对。
    """
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"{e}：{truncate_string(str(raw), 100)}") from e
    return InboundEnvelope.from_dict(data)
