# File: src/timesrv_core/handlers.py
"""
时间服务核心库 - 基础处理器

只负责格式化主机当前时间的简单处理器。所有函数都接受
可选的 Unix 时间戳参数，便于测试时固定时间。
"""

import time

from .protocols.constants import PONG
from .utils import tick_count_ms, truncate_uint32


def _local(now: float | None) -> time.struct_time:
    return time.localtime(time.time() if now is None else now)


def get_time(now: float | None = None) -> str:
    return time.strftime("%d/%m/%Y %H:%M:%S", _local(now))


def get_time_without_date(now: float | None = None) -> str:
    return time.strftime("%H:%M:%S", _local(now))


def get_time_since_epoch(now: float | None = None) -> int:
    """Unix 秒数，截断为 32 位。"""
    return truncate_uint32(int(time.time() if now is None else now))


def get_client_to_server_delay_estimation() -> int:
    """单调 tick 计数 (毫秒)，客户端对一次突发的 100 个响应做差分。"""
    return tick_count_ms()


def measure_rtt() -> bytes:
    """Pong。"""
    return PONG


def get_time_without_date_or_seconds(now: float | None = None) -> str:
    return time.strftime("%H:%M", _local(now))


def get_year(now: float | None = None) -> str:
    return time.strftime("%Y", _local(now))


def get_month_and_day(now: float | None = None) -> str:
    return time.strftime("%d/%m", _local(now))


def get_daylight_savings(now: float | None = None) -> str:
    """主机自身的夏令时标志 ("1"/"0")，与城市无关。"""
    return "1" if _local(now).tm_isdst > 0 else "0"
