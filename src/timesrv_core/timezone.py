# File: src/timesrv_core/timezone.py
"""
时间服务核心库 - 时区引擎 (TimeZone Engine)

负责计算指定城市的本地时间 (含 EU/US 夏令时规则)，
以及通用的月/周算术 (月初至今秒数、年内周数)。

城市时区表是静态只读的，可被多个工作线程安全共享。
"""

import calendar
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum, auto
from types import MappingProxyType


class DstRule(Enum):
    """夏令时规则。"""

    NONE = auto()
    EU = auto()
    US = auto()


@dataclass(frozen=True)
class CityTimeZone:
    """城市时区信息。

    Attributes:
        base_utc_offset_hours: 标准时间相对 UTC 的偏移 (小时)。
        has_dst: 是否实行夏令时。
        dst_rule: 适用的夏令时规则。
    """

    base_utc_offset_hours: int
    has_dst: bool
    dst_rule: DstRule = DstRule.NONE


DEFAULT_CITY = "utc"

CITY_TIMEZONES = MappingProxyType(
    {
        "doha": CityTimeZone(+3, False, DstRule.NONE),
        "prague": CityTimeZone(+1, True, DstRule.EU),
        "new-york": CityTimeZone(-5, True, DstRule.US),
        "berlin": CityTimeZone(+1, True, DstRule.EU),
        "utc": CityTimeZone(0, False, DstRule.NONE),
    }
)

# 可接受的别名 (含数字快捷方式)，均为规范化之后的形式
_CITY_ALIASES = MappingProxyType(
    {
        "doha": "doha",
        "1": "doha",
        "prague": "prague",
        "2": "prague",
        "new-york": "new-york",
        "newyork": "new-york",
        "3": "new-york",
        "berlin": "berlin",
        "4": "berlin",
    }
)


def normalize_city(city: str) -> str:
    """规范化城市名称。

    去除首尾空白、转小写、内部空白替换为连字符，再匹配别名表。
    无法识别的输入一律回退为 "utc"，不会抛出异常。

    Args:
        city: 用户输入的城市名或数字快捷方式 (1-4)。

    Returns:
        str: 规范化后的城市名。
    """
    key = "-".join(city.strip().lower().split())
    return _CITY_ALIASES.get(key, DEFAULT_CITY)


# =========================================================================
# 日历算术
# =========================================================================


def _first_weekday(year: int, month: int) -> int:
    """当月 1 号是星期几 (0=周日 .. 6=周六)。"""
    return (calendar.weekday(year, month, 1) + 1) % 7


def nth_weekday_of_month(year: int, month: int, weekday: int, nth: int) -> int:
    """计算某月第 n 个指定星期几的日期。

    Args:
        year: 年份。
        month: 月份 (1-12)。
        weekday: 星期几 (0=周日 .. 6=周六)。
        nth: 第几个 (从 1 开始)。

    Returns:
        int: 当月的日期号。
    """
    first = _first_weekday(year, month)
    return 1 + ((7 + weekday - first) % 7) + (nth - 1) * 7


def last_weekday_of_month(year: int, month: int, weekday: int) -> int:
    """计算某月最后一个指定星期几的日期 (weekday: 0=周日)。"""
    last_dom = calendar.monthrange(year, month)[1]
    last_wd = (_first_weekday(year, month) + last_dom - 1) % 7
    return last_dom - (7 + last_wd - weekday) % 7


# =========================================================================
# 夏令时规则
# =========================================================================


def is_dst_eu(utc: datetime) -> bool:
    """EU 规则: 3 月最后一个周日 01:00 UTC 至 10 月最后一个周日 01:00 UTC。

    Args:
        utc: UTC 时间。
    """
    start = last_weekday_of_month(utc.year, 3, 0)
    end = last_weekday_of_month(utc.year, 10, 0)
    mon, day, hour = utc.month, utc.day, utc.hour
    if mon < 3 or mon > 10:
        return False
    if 3 < mon < 10:
        return True
    if mon == 3:
        return day > start or (day == start and hour >= 1)
    return day < end or (day == end and hour < 1)


def is_dst_us_local_approx(shifted: datetime) -> bool:
    """US 规则: 3 月第二个周日 02:00 至 11 月第一个周日 02:00 (本地时间)。

    近似计算: 传入的是按城市 *标准* 偏移平移后的 UTC 时间，
    并未考虑偏移本身在切换时刻的变化，因此在切换点附近
    可能有一小时的误差。这是已接受的近似，而不是缺陷。

    Args:
        shifted: UTC 时间 + 城市标准偏移。
    """
    start = nth_weekday_of_month(shifted.year, 3, 0, 2)
    end = nth_weekday_of_month(shifted.year, 11, 0, 1)
    mon, day, hour = shifted.month, shifted.day, shifted.hour
    if mon < 3 or mon > 11:
        return False
    if 3 < mon < 11:
        return True
    if mon == 3:
        return day > start or (day == start and hour >= 2)
    return day < end or (day == end and hour < 2)


# =========================================================================
# 城市本地时间
# =========================================================================


def _utc_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def utc_offset_for_city(city: str, now: datetime | None = None) -> int:
    """计算城市当前的 UTC 偏移 (小时，已含夏令时)。"""
    utc = _utc_now(now)
    tz = CITY_TIMEZONES[normalize_city(city)]
    offset = tz.base_utc_offset_hours
    if tz.has_dst:
        if tz.dst_rule is DstRule.EU:
            if is_dst_eu(utc):
                offset += 1
        elif tz.dst_rule is DstRule.US:
            if is_dst_us_local_approx(utc + timedelta(hours=offset)):
                offset += 1
    return offset


def local_time_in_city(city: str, now: datetime | None = None) -> str:
    """获取城市的本地时间。

    Args:
        city: 城市名 (任意形式，内部会规范化)。
        now: 当前时间，默认取系统 UTC 时间。naive 值视为 UTC。

    Returns:
        str: "HH:MM:SS" 格式的本地时间。
    """
    utc = _utc_now(now)
    offset = utc_offset_for_city(city, utc)
    return (utc + timedelta(hours=offset)).strftime("%H:%M:%S")


# =========================================================================
# 月/周算术 (主机本地时区)
# =========================================================================


def seconds_since_month_start(now: float | None = None) -> int:
    """当前时刻距本月 1 号本地零点的秒数。

    Args:
        now: Unix 时间戳，默认取当前时间。
    """
    if now is None:
        now = time.time()
    lt = time.localtime(now)
    month_start = time.mktime((lt.tm_year, lt.tm_mon, 1, 0, 0, 0, 0, 0, -1))
    return int(now - month_start)


def week_of_year(now: float | None = None) -> int:
    """以周日为一周起点的年内周数 (%U，范围 0-53)。

    第 0 周为当年第一个周日之前的日子。
    """
    if now is None:
        now = time.time()
    return int(time.strftime("%U", time.localtime(now)))
