"""
时间服务核心库 - 配置模块

负责配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量 (含 .env 文件) 或字典中加载配置。
"""

import logging
import os
import socket
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import netifaces
from dotenv import load_dotenv

from .exceptions import ConfigError
from .protocols.constants import BUFFER_SIZE, DEFAULT_PORT, LAP_EXPIRY_SECONDS

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ServerConfig:
    """时间服务的强类型配置对象。

    所有字段均为只读 (frozen=True)，确保配置在运行时不可变。

    Attributes:
        bind_ip: 服务端本地绑定 IP (通常为 0.0.0.0)。
        server_port: 服务端口 (默认 27015)。
        server_address: 客户端请求的目标服务器地址。
        bind_interface: 绑定网卡名，设置后取其 IPv4 地址覆盖 bind_ip。
        buffer_size: 单个请求的最大字节数，超出部分截断。
        queue_size: 接收队列容量，队列满时丢弃新包。
        lap_expiry: 圈速计时条目的过期时间 (秒)。
        client_timeout: 客户端等待响应的超时 (秒)。
        reply_on_error: 请求失败时是否回复错误包 (默认静默)。
        log_level: 日志级别名称。
    """

    bind_ip: str = "0.0.0.0"
    server_port: int = DEFAULT_PORT
    server_address: str = "127.0.0.1"
    bind_interface: str | None = None
    buffer_size: int = BUFFER_SIZE
    queue_size: int = 128
    lap_expiry: float = LAP_EXPIRY_SECONDS
    client_timeout: float = 2.0
    reply_on_error: bool = False
    log_level: str = "INFO"

    @property
    def bind_address(self) -> tuple[str, int]:
        return (self.bind_ip, self.server_port)

    @property
    def server_endpoint(self) -> tuple[str, int]:
        return (self.server_address, self.server_port)


def resolve_interface_ip(interface: str) -> str:
    """获取网卡的第一个 IPv4 地址。

    Raises:
        ConfigError: 网卡不存在或没有 IPv4 地址。
    """
    if interface not in netifaces.interfaces():
        raise ConfigError(f"网卡不存在: {interface}")

    addresses = netifaces.ifaddresses(interface)
    for addr_info in addresses.get(netifaces.AF_INET, []):
        ip = addr_info.get("addr")
        if ip:
            logger.debug(f"网卡 {interface} 的 IPv4 地址: {ip}")
            return ip
    raise ConfigError(f"网卡 {interface} 没有 IPv4 地址")


def _to_bool(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in ("true", "1", "t", "yes", "on")


def create_config_from_dict(raw_data: dict[str, Any]) -> ServerConfig:
    """通用工厂：将字典转换为强类型配置对象。

    负责字段的清洗、默认值注入和类型转换。所有字段均可选。

    Args:
        raw_data: 原始配置字典 (来自 TOML 或 Env)。

    Returns:
        ServerConfig: 验证并转换后的配置对象。

    Raises:
        ConfigError: 字段格式错误时抛出。
    """
    defaults = ServerConfig()

    try:

        def _get(key: str, default: Any) -> Any:
            return raw_data.get(key, default)

        def _ip(key: str, default: str) -> str:
            val = str(_get(key, default)).strip()
            try:
                socket.inet_aton(val)
            except OSError:
                raise ConfigError(f"IP 格式无效 '{key}': {val}")
            return val

        def _positive(key: str, default: float, cast: type) -> Any:
            val = cast(_get(key, default))
            if val <= 0:
                raise ConfigError(f"'{key}' 必须为正数: {val}")
            return val

        port = int(_get("port", defaults.server_port))
        if not 0 <= port <= 0xFFFF:
            raise ConfigError(f"端口越界: {port}")

        bind_interface = _get("bind_interface", None) or None
        bind_ip = _ip("bind_ip", defaults.bind_ip)
        if bind_interface:
            bind_ip = resolve_interface_ip(str(bind_interface))

        log_level = str(_get("log_level", defaults.log_level)).upper()
        if log_level not in _LOG_LEVELS:
            raise ConfigError(f"日志级别无效: {log_level}")

        return ServerConfig(
            bind_ip=bind_ip,
            server_port=port,
            server_address=str(_get("server_ip", defaults.server_address)),
            bind_interface=str(bind_interface) if bind_interface else None,
            buffer_size=_positive("buffer_size", defaults.buffer_size, int),
            queue_size=_positive("queue_size", defaults.queue_size, int),
            lap_expiry=_positive("lap_expiry", defaults.lap_expiry, float),
            client_timeout=_positive(
                "client_timeout", defaults.client_timeout, float
            ),
            reply_on_error=_to_bool(_get("reply_on_error", defaults.reply_on_error)),
            log_level=log_level,
        )

    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"配置生成失败: {e}") from e


def load_config_from_toml(file_path: Path, profile: str = "default") -> ServerConfig:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [timesrv]: 单一配置块。
    3. Root: 根目录直接配置。

    Args:
        file_path: TOML 文件路径。
        profile: 配置预设名。默认为 "default"。

    Returns:
        ServerConfig: 配置对象。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    raw_config = {}

    if "profile" in data:
        if profile not in data["profile"]:
            if profile != "default":
                raise ConfigError(f"未找到预设: [profile.{profile}]")
        else:
            raw_config = data["profile"][profile]
    elif "timesrv" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [timesrv] 节，忽略 profile='{profile}'。")
        raw_config = data["timesrv"]
    else:
        raw_config = data

    return create_config_from_dict(raw_config)


def load_config_from_env(dotenv_path: Path | None = None) -> ServerConfig:
    """从环境变量加载配置 (Docker/Cloud Friendly)。

    读取所有以 `TIMESRV_` 开头的环境变量，并映射到配置字段。
    例如: `TIMESRV_PORT` -> `port`。未设置的字段使用默认值。

    Args:
        dotenv_path: 可选的 .env 文件路径，存在时先加载到环境变量。

    Returns:
        ServerConfig: 配置对象。
    """
    if dotenv_path is not None:
        if dotenv_path.exists():
            load_dotenv(dotenv_path=dotenv_path, override=True)
            logger.debug(f"已加载配置文件: {dotenv_path}")
        else:
            logger.warning(f".env 文件不存在: {dotenv_path}")

    # 字段映射表 (Config Field -> Env Suffix)
    env_map = {
        "bind_ip": "BIND_IP",
        "port": "PORT",
        "server_ip": "SERVER_IP",
        "bind_interface": "BIND_INTERFACE",
        "buffer_size": "BUFFER_SIZE",
        "queue_size": "QUEUE_SIZE",
        "lap_expiry": "LAP_EXPIRY",
        "client_timeout": "CLIENT_TIMEOUT",
        "reply_on_error": "REPLY_ON_ERROR",
        "log_level": "LOG_LEVEL",
    }

    raw_data = {}
    for cfg_key, env_suffix in env_map.items():
        val = os.environ.get(f"TIMESRV_{env_suffix}")
        if val is not None:
            raw_data[cfg_key] = val

    if not raw_data:
        logger.info("未检测到 TIMESRV_ 前缀的环境变量，使用默认配置")

    return create_config_from_dict(raw_data)
