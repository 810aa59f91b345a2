"""gsuid-bridge 的 CLI 命令。"""

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from gsuid_bridge import __logo__, __version__

app = typer.Typer(
    name="gsuid-bridge",
    help=f"{__logo__} gsuid-bridge - 聊天平台与 gsuid-core 之间的消息桥",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} gsuid-bridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """gsuid-bridge - 聊天平台与 gsuid-core 之间的消息桥。"""
    pass


def _setup_logging(dev: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if dev else "INFO")


# ============================================================================
# 配置
# ============================================================================


@app.command()
def init(
    config_file: Path = typer.Option(None, "--config", "-c", help="配置文件路径"),
):
    """创建默认配置文件。"""
    from gsuid_bridge.config.loader import get_config_path, save_config
    from gsuid_bridge.config.schema import BridgeConfig

    config_path = config_file or get_config_path()

    if config_path.exists():
        console.print(f"[yellow]配置已存在于 {config_path}[/yellow]")
        if not typer.confirm("覆盖？"):
            raise typer.Exit()

    save_config(BridgeConfig(), config_path)
    console.print(f"[green]✓[/green] 已在 {config_path} 创建配置")
    console.print("\n下一步：")
    console.print("  1. 在配置中填写 gsuid-core 的 [cyan]host[/cyan] 和 [cyan]port[/cyan]")
    console.print("  2. 试着聊天：[cyan]gsuid-bridge console[/cyan]")


@app.command()
def status(
    config_file: Path = typer.Option(None, "--config", "-c", help="配置文件路径"),
):
    """显示当前配置和 core 端点。"""
    from gsuid_bridge.config.loader import get_config_path, load_config

    config_path = config_file or get_config_path()
    config = load_config(config_path)

    console.print(f"{__logo__} gsuid-bridge 状态\n")
    console.print(f"配置：{config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"core 端点：[cyan]{config.ws_url}[/cyan]")
    host, port, scheme, http_path = config.console_info
    console.print(f"core 网页控制台：[cyan]{scheme}//{host}:{port}/{http_path}[/cyan]\n")

    table = Table(title="配置项")
    table.add_column("名称", style="cyan")
    table.add_column("值", style="green")
    for name, value in config.model_dump().items():
        table.add_row(name, str(value))
    console.print(table)


# ============================================================================
# 终端对话
# ============================================================================


@app.command("console")
def console_chat(
    config_file: Path = typer.Option(None, "--config", "-c", help="配置文件路径"),
    user_id: str = typer.Option("console-user", "--user", "-u", help="发送消息使用的用户 ID"),
    authority: int = typer.Option(None, "--authority", "-a", help="模拟的用户权限等级"),
    dev: bool = typer.Option(False, "--dev", help="输出调试日志"),
):
    """在终端中通过 gsuid-core 聊天。"""
    from gsuid_bridge.bridge import GsuidBridge
    from gsuid_bridge.config.loader import load_config
    from gsuid_bridge.platform.console import ConsolePlatform

    config = load_config(config_file)
    if dev:
        config.dev = True
    _setup_logging(config.dev)

    platform = ConsolePlatform(console, user_id=user_id, authority=authority)
    bridge = GsuidBridge(platform, config)

    console.print(f"{__logo__} 交互模式（Ctrl+C 退出），core：{config.ws_url}\n")

    async def run_interactive():
        await bridge.start()
        loop = asyncio.get_running_loop()
        try:
            while True:
                user_input = await loop.run_in_executor(None, console.input, "[bold blue]你：[/bold blue] ")
                if not user_input.strip():
                    continue
                await bridge.handle_session(platform.make_session(user_input))
        except (KeyboardInterrupt, EOFError):
            console.print("\n再见！")
        finally:
            await bridge.dispose()

    try:
        asyncio.run(run_interactive())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    app()
