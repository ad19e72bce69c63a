# tests/test_client.py
"""
测试客户端请求方法，传输层 Mock 为异步。
"""

import pytest

from timesrv_core.client import TimeClient
from timesrv_core.exceptions import NetworkError, ProtocolError
from timesrv_core.protocols import RequestCode, encode_request
from timesrv_core.protocols.constants import LAP_STARTED

SERVER = ("127.0.0.1", 27015)


@pytest.fixture
def client(valid_config, mock_transport):
    return TimeClient(valid_config, transport=mock_transport)


def _reply(mock_transport, *payloads):
    mock_transport.receive.side_effect = [(p, SERVER) for p in payloads]


@pytest.mark.asyncio
async def test_get_time(client, mock_transport):
    _reply(mock_transport, b"18/10/2026 12:34:56")

    assert await client.get_time() == "18/10/2026 12:34:56"
    mock_transport.send.assert_awaited_once_with(b"\x01", SERVER)
    mock_transport.receive.assert_awaited_once_with(1.0)


@pytest.mark.asyncio
async def test_uint32_requests(client, mock_transport):
    _reply(mock_transport, b"\x01\x02\x03\x04", b"\x2a", b"\x00")

    assert await client.get_time_since_epoch() == 0x01020304
    assert await client.get_week_of_year() == 42
    assert await client.get_seconds_since_beginning_of_month() == 0


@pytest.mark.asyncio
async def test_oversized_uint32_response(client, mock_transport):
    _reply(mock_transport, b"\x01\x02\x03\x04\x05")
    with pytest.raises(ProtocolError):
        await client.get_time_since_epoch()


@pytest.mark.asyncio
async def test_error_response_raises(client, mock_transport):
    _reply(mock_transport, b"\xff")
    with pytest.raises(ProtocolError, match="错误响应"):
        await client.get_year()


@pytest.mark.asyncio
async def test_timeout_propagates(client, mock_transport):
    mock_transport.receive.side_effect = NetworkError("接收超时 (1.0s)")
    with pytest.raises(NetworkError):
        await client.get_month_and_day()


@pytest.mark.asyncio
async def test_daylight_savings(client, mock_transport):
    _reply(mock_transport, b"1", b"0")
    assert await client.get_daylight_savings() is True
    assert await client.get_daylight_savings() is False


@pytest.mark.asyncio
async def test_time_in_city_normalizes_before_sending(client, mock_transport):
    _reply(mock_transport, b"07:00:00")

    assert await client.get_time_in_city("  NEW YORK ") == "07:00:00"
    mock_transport.send.assert_awaited_once_with(
        encode_request(RequestCode.GET_TIME_WITHOUT_DATE_IN_CITY, ["new-york"]), SERVER
    )


@pytest.mark.asyncio
async def test_measure_time_lap(client, mock_transport):
    _reply(mock_transport, LAP_STARTED.encode(), b"00:05")

    assert await client.measure_time_lap() is None
    assert await client.measure_time_lap() == "00:05"


@pytest.mark.asyncio
async def test_delay_estimation_burst(client, mock_transport):
    _reply(mock_transport, b"\x10", b"\x20", b"\x35")

    avg = await client.get_client_to_server_delay_estimation(samples=3)

    assert avg == pytest.approx(18.5)
    assert mock_transport.send.await_count == 3
    assert mock_transport.receive.await_count == 3


@pytest.mark.asyncio
async def test_measure_rtt(client, mock_transport):
    _reply(mock_transport, b"\x00", b"\x00")

    rtt = await client.measure_rtt(samples=2)

    assert rtt >= 0.0
    assert mock_transport.send.await_count == 2
    mock_transport.send.assert_awaited_with(b"\x05", SERVER)


@pytest.mark.asyncio
async def test_text_requests(client, mock_transport):
    _reply(mock_transport, b"12:34:56", b"12:34", b"2026", b"18/10")

    assert await client.get_time_without_date() == "12:34:56"
    assert await client.get_time_without_date_or_seconds() == "12:34"
    assert await client.get_year() == "2026"
    assert await client.get_month_and_day() == "18/10"


@pytest.mark.asyncio
async def test_close(client, mock_transport):
    async with client:
        pass
    mock_transport.close.assert_awaited_once()
