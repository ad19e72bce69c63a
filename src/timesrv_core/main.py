# src/timesrv_core/main.py
"""
时间服务端启动入口。

配置来源优先级: --config 指定的 TOML 文件 > 环境变量 / .env 文件。
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from . import __version__
from .config import ServerConfig, load_config_from_env, load_config_from_toml
from .core import TimeServer
from .exceptions import ConfigError, NetworkError

logger = logging.getLogger("TimeServerCLI")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timesrv-server", description="UDP 时间查询服务"
    )
    parser.add_argument("--config", type=Path, help="TOML 配置文件路径")
    parser.add_argument("--profile", default="default", help="TOML 配置预设名")
    parser.add_argument(
        "--env-file", type=Path, default=Path.cwd() / ".env", help=".env 文件路径"
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def load_cli_config(args: argparse.Namespace) -> ServerConfig:
    if args.config:
        logger.info(f"加载配置文件: {args.config}")
        return load_config_from_toml(args.config, args.profile)
    return load_config_from_env(args.env_file if args.env_file.exists() else None)


async def run_server(config: ServerConfig) -> None:
    server = TimeServer(config)
    loop = asyncio.get_running_loop()

    def _request_stop() -> None:
        logger.info("收到中断信号，正在停止...")
        asyncio.ensure_future(server.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop)
        except NotImplementedError:
            # Windows 事件循环不支持 add_signal_handler
            pass

    try:
        await server.serve_forever()
    finally:
        state = server.state
        logger.info(
            f"统计: 收到 {state.requests_received}，"
            f"响应 {state.responses_sent}，失败 {state.dispatch_failures}"
        )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_cli_config(args)
    except ConfigError as ce:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"配置错误: {ce}")
        return 1

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        asyncio.run(run_server(config))
    except NetworkError as ne:
        logger.error(f"网络错误: {ne}")
        return 1
    except KeyboardInterrupt:
        logger.info("收到用户中断信号 (Ctrl+C)，退出")
    return 0


if __name__ == "__main__":
    sys.exit(main())
