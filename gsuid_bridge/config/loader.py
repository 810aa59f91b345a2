"""配置的加载和保存。"""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from gsuid_bridge.config.schema import BridgeConfig
from gsuid_bridge.utils.helpers import get_data_path


def get_config_path() -> Path:
    """获取默认配置文件路径。"""
    return get_data_path() / "config.json"


def load_config(config_path: Path | None = None) -> BridgeConfig:
    """
    从文件加载配置，文件不存在时使用默认值。

    参数:
        config_path: 可选的配置文件路径。

    返回:
        加载后的配置对象。
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return BridgeConfig(**convert_keys(data))
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning(f"从 {path} 加载配置失败：{e}")
            logger.warning("使用默认配置")

    return BridgeConfig()


def save_config(config: BridgeConfig, config_path: Path | None = None) -> None:
    """以 camelCase 键保存配置。"""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def convert_keys(data: Any) -> Any:
    """将 camelCase 键转换为 snake_case。"""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """将 snake_case 键转换为 camelCase。"""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
