# tests/test_timezone.py
"""
测试时区引擎: 城市名规范化、日历算术、EU/US 夏令时边界与月/周计算。
"""

import re
import time
from datetime import datetime, timedelta, timezone

import pytest

from timesrv_core import timezone as tz_engine
from timesrv_core.timezone import (
    CITY_TIMEZONES,
    DstRule,
    is_dst_eu,
    is_dst_us_local_approx,
    last_weekday_of_month,
    local_time_in_city,
    normalize_city,
    nth_weekday_of_month,
    seconds_since_month_start,
    utc_offset_for_city,
    week_of_year,
)

# --- 城市名规范化 ---


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("NEW YORK", "new-york"),
        ("new   york", "new-york"),
        ("newyork", "new-york"),
        ("3", "new-york"),
        ("  Berlin ", "berlin"),
        ("4", "berlin"),
        ("Doha", "doha"),
        ("1", "doha"),
        ("prague", "prague"),
        ("2", "prague"),
        ("5", "utc"),
        ("tokyo", "utc"),
        ("", "utc"),
    ],
)
def test_normalize_city(raw, expected):
    assert normalize_city(raw) == expected


def test_every_alias_has_timezone():
    for alias in ("1", "2", "3", "4", "unknown"):
        assert normalize_city(alias) in CITY_TIMEZONES


def test_city_table_is_read_only():
    with pytest.raises(TypeError):
        CITY_TIMEZONES["tokyo"] = CITY_TIMEZONES["utc"]  # type: ignore[index]
    assert CITY_TIMEZONES["new-york"].dst_rule is DstRule.US


# --- 日历算术 ---


def test_nth_weekday_of_month():
    # 2026 年: 3 月第二个周日是 8 号，11 月第一个周日是 1 号
    assert nth_weekday_of_month(2026, 3, 0, 2) == 8
    assert nth_weekday_of_month(2026, 11, 0, 1) == 1
    assert nth_weekday_of_month(2024, 3, 0, 2) == 10


def test_last_weekday_of_month():
    assert last_weekday_of_month(2026, 3, 0) == 29
    assert last_weekday_of_month(2026, 10, 0) == 25
    assert last_weekday_of_month(2024, 3, 0) == 31
    # 闰年 2 月
    assert last_weekday_of_month(2024, 2, 0) == 25


# --- EU 夏令时边界 ---


def test_eu_dst_start_boundary():
    boundary = datetime(2026, 3, 29, 1, 0, tzinfo=timezone.utc)
    assert is_dst_eu(boundary - timedelta(minutes=1)) is False
    assert is_dst_eu(boundary + timedelta(minutes=1)) is True


def test_eu_dst_end_boundary():
    boundary = datetime(2026, 10, 25, 1, 0, tzinfo=timezone.utc)
    assert is_dst_eu(boundary - timedelta(minutes=1)) is True
    assert is_dst_eu(boundary) is False


@pytest.mark.parametrize(
    "month, expected", [(1, False), (2, False), (4, True), (9, True), (11, False)]
)
def test_eu_dst_whole_months(month, expected):
    assert is_dst_eu(datetime(2026, month, 15, 12, 0)) is expected


# --- US 夏令时 (近似) ---


def test_us_dst_boundaries_on_shifted_clock():
    assert is_dst_us_local_approx(datetime(2026, 3, 8, 1, 59)) is False
    assert is_dst_us_local_approx(datetime(2026, 3, 8, 2, 0)) is True
    assert is_dst_us_local_approx(datetime(2026, 11, 1, 1, 59)) is True
    assert is_dst_us_local_approx(datetime(2026, 11, 1, 2, 0)) is False


def test_new_york_offset_uses_unadjusted_base_offset():
    # 02:00 EST = 07:00 UTC
    assert utc_offset_for_city("new-york", datetime(2026, 3, 8, 6, 59)) == -5
    assert utc_offset_for_city("new-york", datetime(2026, 3, 8, 7, 0)) == -4
    # 结束时刻同样按标准偏移计算 (真实切换在 06:00 UTC，这里是 07:00 UTC)
    assert utc_offset_for_city("new-york", datetime(2026, 11, 1, 6, 30)) == -4
    assert utc_offset_for_city("new-york", datetime(2026, 11, 1, 7, 0)) == -5


# --- 城市本地时间 ---

SUMMER = datetime(2026, 7, 1, 12, 0, 0, tzinfo=timezone.utc)
WINTER = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "city, summer, winter",
    [
        ("berlin", "14:00:00", "13:00:00"),
        ("Prague", "14:00:00", "13:00:00"),
        ("new york", "08:00:00", "07:00:00"),
        ("doha", "15:00:00", "15:00:00"),
        ("atlantis", "12:00:00", "12:00:00"),
    ],
)
def test_local_time_in_city(city, summer, winter):
    assert local_time_in_city(city, SUMMER) == summer
    assert local_time_in_city(city, WINTER) == winter


def test_local_time_naive_input_is_utc():
    assert local_time_in_city("doha", datetime(2026, 1, 15, 23, 30)) == "02:30:00"


def test_local_time_in_city_now_format():
    assert re.fullmatch(r"\d{2}:\d{2}:\d{2}", local_time_in_city("berlin"))


# --- 月/周算术 ---


def test_seconds_since_month_start():
    now = time.mktime((2026, 2, 3, 10, 0, 0, 0, 0, -1))
    assert seconds_since_month_start(now) == 2 * 86400 + 10 * 3600


def test_seconds_since_month_start_default_now():
    assert 0 <= seconds_since_month_start() < 31 * 86400 + 3600


def test_week_of_year_sunday_based():
    # 2026-01-01 是周四 (第 0 周)，2026-01-04 是当年第一个周日 (第 1 周)
    assert week_of_year(time.mktime((2026, 1, 1, 12, 0, 0, 0, 0, -1))) == 0
    assert week_of_year(time.mktime((2026, 1, 3, 12, 0, 0, 0, 0, -1))) == 0
    assert week_of_year(time.mktime((2026, 1, 4, 12, 0, 0, 0, 0, -1))) == 1


def test_week_of_year_range():
    assert 0 <= week_of_year() <= 53
    assert tz_engine.week_of_year(time.mktime((2026, 12, 31, 12, 0, 0, 0, 0, -1))) == 52
