"""
gsuid-bridge 的入口点，用于 python -m gsuid_bridge。
"""

from gsuid_bridge.cli.commands import app

if __name__ == "__main__":
    app()
