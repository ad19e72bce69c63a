# File: src/timesrv_core/utils.py
"""
时间服务核心库 - 通用工具箱

本模块汇集了服务端与客户端共用的小型数值/格式化函数。
"""

import time
from collections.abc import Sequence

from .protocols.constants import UINT32_MAX


def truncate_uint32(value: int) -> int:
    """将整数截断为 32 位无符号整数 (保留低 32 位)。

    Args:
        value: 任意非负整数，例如 Unix 时间戳或毫秒计数。

    Returns:
        int: 0 ~ 0xFFFFFFFF 范围内的值。
    """
    return value & UINT32_MAX


def tick_count_ms() -> int:
    """单调时钟的毫秒计数，截断为 32 位。

    仅用于差分计算，绝对值没有意义，约 49.7 天回绕一次。
    """
    return truncate_uint32(int(time.monotonic() * 1000))


def format_lap(elapsed_seconds: int) -> str:
    """将经过的秒数格式化为 "MM:SS"。

    没有小时字段: 超过 3600 秒时分钟数继续增长 (如 "61:05")。

    Args:
        elapsed_seconds: 经过的整秒数。

    Returns:
        str: 零填充的 "MM:SS" 字符串。
    """
    minutes, seconds = divmod(elapsed_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


def calc_avg_difference(samples: Sequence[int]) -> float:
    """计算相邻采样值之差的平均值。

    用于客户端时延估计: 服务端返回的 tick 计数在一次突发中
    的平均增量即为相邻请求到达服务端的平均间隔 (毫秒)。
    32 位计数回绕按模 2^32 处理。

    Args:
        samples: 按接收顺序排列的 tick 计数。

    Returns:
        float: 平均差值；样本少于 2 个时返回 0.0。
    """
    if len(samples) < 2:
        return 0.0
    total = 0
    for prev, cur in zip(samples, samples[1:]):
        total += truncate_uint32(cur - prev)
    return total / (len(samples) - 1)
