# tests/test_dispatcher.py
"""
测试请求分发器: 分发表、负载类型约定与错误路径。
"""

import re
import time

import pytest

from timesrv_core.dispatcher import Dispatcher
from timesrv_core.exceptions import DispatchError, RequestError
from timesrv_core.laptimer import LapTimerStore
from timesrv_core.protocols import (
    RESPONSE_KINDS,
    Request,
    RequestCode,
    decode_request,
    decode_uint32,
)
from timesrv_core.protocols.constants import LAP_STARTED


@pytest.fixture
def dispatcher():
    return Dispatcher(LapTimerStore())


def test_every_contracted_code_has_handler(dispatcher):
    assert dispatcher.supported_codes == frozenset(RESPONSE_KINDS)


# --- 端到端字节场景 ---


def test_time_without_date_bytes(dispatcher, endpoint):
    resp = dispatcher.dispatch(decode_request(bytes([0x02])), endpoint)
    assert re.fullmatch(r"\d{2}:\d{2}:\d{2}", resp.decode("ascii"))


def test_time_in_city_bytes(dispatcher, endpoint):
    pkt = bytes([0x0C, 0x00]) + b"berlin"
    resp = dispatcher.dispatch(decode_request(pkt), endpoint)
    assert re.fullmatch(r"\d{2}:\d{2}:\d{2}", resp.decode("ascii"))


# --- 各处理器 ---


@pytest.mark.parametrize(
    "code, pattern",
    [
        (RequestCode.GET_TIME, r"\d{2}/\d{2}/\d{4} \d{2}:\d{2}:\d{2}"),
        (RequestCode.GET_TIME_WITHOUT_DATE_OR_SECONDS, r"\d{2}:\d{2}"),
        (RequestCode.GET_YEAR, r"\d{4}"),
        (RequestCode.GET_MONTH_AND_DAY, r"\d{2}/\d{2}"),
        (RequestCode.GET_DAYLIGHT_SAVINGS, r"[01]"),
    ],
)
def test_text_handlers(dispatcher, endpoint, code, pattern):
    result = dispatcher.handle(Request(code), endpoint)
    assert isinstance(result, str)
    assert re.fullmatch(pattern, result)


def test_time_since_epoch(dispatcher, endpoint):
    resp = dispatcher.dispatch(Request(RequestCode.GET_TIME_SINCE_EPOCH), endpoint)
    assert abs(decode_uint32(resp) - int(time.time())) <= 5


def test_delay_estimation_ticks_are_monotonic(dispatcher, endpoint):
    req = Request(RequestCode.GET_CLIENT_TO_SERVER_DELAY_ESTIMATION)
    first = decode_uint32(dispatcher.dispatch(req, endpoint))
    second = decode_uint32(dispatcher.dispatch(req, endpoint))
    assert (second - first) & 0xFFFFFFFF < 5000


def test_measure_rtt_is_pong(dispatcher, endpoint):
    assert dispatcher.dispatch(Request(RequestCode.MEASURE_RTT), endpoint) == b"\x00"


def test_month_and_week_numbers(dispatcher, endpoint):
    secs = dispatcher.handle(
        Request(RequestCode.GET_SECONDS_SINCE_BEGINNING_OF_MONTH), endpoint
    )
    week = dispatcher.handle(Request(RequestCode.GET_WEEK_OF_YEAR), endpoint)
    assert 0 <= secs < 32 * 86400
    assert 0 <= week <= 53


def test_time_lap_keyed_by_endpoint(dispatcher):
    req = Request(RequestCode.MEASURE_TIME_LAP)
    a = ("10.0.0.1", 1111)
    b = ("10.0.0.2", 1111)

    assert dispatcher.dispatch(req, a) == LAP_STARTED.encode()
    assert dispatcher.dispatch(req, b) == LAP_STARTED.encode()
    assert dispatcher.dispatch(req, a) == b"00:00"
    assert a not in dispatcher.lap_store
    assert b in dispatcher.lap_store


# --- 错误路径 ---


@pytest.mark.parametrize("code", [RequestCode.ERROR, RequestCode.DEFAULT])
def test_unmapped_code_fails(dispatcher, endpoint, code):
    with pytest.raises(DispatchError):
        dispatcher.dispatch(Request(code), endpoint)


def test_empty_packet_fails(dispatcher, endpoint):
    with pytest.raises(DispatchError):
        dispatcher.dispatch(decode_request(b""), endpoint)


def test_city_without_params_fails(dispatcher, endpoint):
    with pytest.raises(RequestError) as exc:
        dispatcher.dispatch(decode_request(b"\x0c"), endpoint)
    assert exc.value.code == RequestCode.GET_TIME_WITHOUT_DATE_IN_CITY


def test_handler_with_wrong_payload_kind(dispatcher, endpoint):
    dispatcher._handlers[RequestCode.GET_YEAR] = lambda req, ep: 2026
    with pytest.raises(DispatchError, match="约定为 str"):
        dispatcher.dispatch(Request(RequestCode.GET_YEAR), endpoint)
