# src/timesrv_core/__init__.py
"""
timesrv-core v1.0.0
基于 UDP 的轻量级时间查询协议核心库 (服务端 + 客户端)。
"""

# 暴露核心配置
from .client import TimeClient
from .config import (
    ServerConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# 暴露引擎与状态
from .core import TimeServer
from .dispatcher import Dispatcher

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    ConfigError,
    DispatchError,
    NetworkError,
    ProtocolError,
    RequestError,
    TimeServerError,
)
from .laptimer import LapTimerStore
from .protocols import Request, RequestCode
from .state import ServerState, ServerStatus

__version__ = "1.0.0"

__all__ = [
    "TimeServer",
    "TimeClient",
    "Dispatcher",
    "LapTimerStore",
    "ServerConfig",
    "ServerState",
    "ServerStatus",
    "Request",
    "RequestCode",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "TimeServerError",
    "ConfigError",
    "NetworkError",
    "ProtocolError",
    "DispatchError",
    "RequestError",
]
