"""core 发来的图片和文件的本地存储。"""

import base64
import binascii
import uuid
from pathlib import Path

from loguru import logger

from gsuid_bridge.errors import AttachmentFetchError
from gsuid_bridge.utils.helpers import ensure_dir, now_ms, short_hash


class AssetStore:
    """
    把 base64 内容写入数据目录。

    图片按内容哈希命名并通过宿主的 /files/ 地址提供，文件按随机 ID 命名。
    """

    def __init__(self, data_dir: Path, files_base_url: str):
        self.data_dir = data_dir
        self.assets_dir = data_dir / "assets"
        self.files_base_url = files_base_url.rstrip("/")

    def save_image(self, payload: str) -> str:
        """
        保存 base64 图片。

        参数:
            payload: 去掉 base64:// 前缀后的内容。

        返回:
            图片对外的 URL。
        """
        data = _b64decode(payload)
        file_name = f"{short_hash(data)}_{now_ms()}.png"
        ensure_dir(self.assets_dir)
        (self.assets_dir / file_name).write_bytes(data)
        logger.debug(f"已保存图片 {file_name}（{len(data)} 字节）")
        return f"{self.files_base_url}/{file_name}"

    def save_file(self, payload: str) -> Path:
        """保存 base64 文件，返回其绝对路径。"""
        data = _b64decode(payload)
        ensure_dir(self.data_dir)
        path = (self.data_dir / str(uuid.uuid4())).resolve()
        path.write_bytes(data)
        logger.debug(f"已保存文件 {path}（{len(data)} 字节）")
        return path


def _b64decode(payload: str) -> bytes:
    # core 可能省略结尾的填充，也可能按行折断
    payload = "".join(payload.split())
    payload += "=" * (-len(payload) % 4)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AttachmentFetchError(f"无效的 base64 内容：{e}") from e
