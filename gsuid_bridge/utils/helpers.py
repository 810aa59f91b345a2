"""gsuid-bridge 的实用工具函数。"""

import hashlib
import time
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """确保目录存在，必要时创建它。"""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """获取 gsuid-bridge 用户目录（~/.gsuid_bridge）。"""
    return ensure_dir(Path.home() / ".gsuid_bridge")


def now_ms() -> int:
    """当前毫秒时间戳。"""
    return int(time.time() * 1000)


def short_hash(data: bytes, length: int = 8) -> str:
    """内容的 SHA-1 十六进制摘要前缀。"""
    return hashlib.sha1(data).hexdigest()[:length]


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """将字符串截断到最大长度，如果被截断则添加后缀。"""
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix
