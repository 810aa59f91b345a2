"""使用 Pydantic 的配置模式定义。"""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class BridgeConfig(BaseSettings):
    """gsuid-bridge 的根配置。"""

    # 连接
    is_wss: bool = False  # 是否使用 wss
    is_https: bool = False  # 是否使用 https
    bot_id: str = "koishi"  # 机器人 ID
    host: str = "localhost"
    port: int = 8765
    ws_path: str = "ws"  # WebSocket 路径
    http_path: str = "genshinuid"  # HTTP 路径
    reconnect_interval: float = 5.0  # 断线后重连等待秒数

    # 兼容项
    dev: bool = False  # 是否启用调试输出
    figure_support: bool = True  # 是否支持合并转发
    img_type: Literal["image", "img"] = "img"  # 图片消息元素类型，新版本使用 img
    passive: bool = True  # 是否使用 passive 元素包裹，用于获取消息上下文
    use_last_message_id: bool = False  # core 不返回 messageId 时使用最后一条消息 ID
    reply_timeout: float = 60.0  # 等待 core 回复的秒数

    # 本地资源
    koishi_url: str = "http://localhost:5140/"  # 宿主的 HTTP 访问地址
    data_dir: str = "./data"

    model_config = SettingsConfigDict(
        env_prefix="GSUID_BRIDGE_",
        env_nested_delimiter="__",
    )

    @property
    def ws_url(self) -> str:
        """core 的 WebSocket 端点。"""
        scheme = "wss" if self.is_wss else "ws"
        return f"{scheme}://{self.host}:{self.port}/{self.ws_path}/{self.bot_id}"

    @property
    def http_scheme(self) -> str:
        return "https:" if self.is_https else "http:"

    @property
    def console_info(self) -> list[str]:
        """提供给控制台的 core 访问信息：[主机, 端口, 协议, HTTP 路径]。"""
        return [self.host, str(self.port), self.http_scheme, self.http_path]

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def assets_path(self) -> Path:
        return self.data_path / "assets"

    @property
    def files_base_url(self) -> str:
        """本地资源对外的基础 URL。"""
        return f"{self.koishi_url.rstrip('/')}/files"
