# File: src/timesrv_core/client.py
"""
时间服务客户端 (Async)

对每一种请求码提供类型化的调用方法。
负载类型不自描述，客户端按请求码约定解析响应。
"""

import logging
import time
from collections.abc import Iterable

from .config import ServerConfig
from .exceptions import ProtocolError
from .network import BaseTransport, UdpTransport
from .protocols.codec import (
    Payload,
    decode_response,
    decode_uint32,
    encode_request,
    is_error_response,
)
from .protocols.constants import DEFAULT_SAMPLES, LAP_STARTED, RequestCode
from .timezone import normalize_city
from .utils import calc_avg_difference

logger = logging.getLogger(__name__)


class TimeClient:
    """UDP 时间服务客户端。"""

    def __init__(
        self, config: ServerConfig, transport: BaseTransport | None = None
    ) -> None:
        """
        Args:
            config: 全局配置对象 (使用 server_address / server_port / client_timeout)。
            transport: 传输层实现，默认为 connect() 时创建的 UdpTransport。
        """
        self.config = config
        self.transport = transport

    async def connect(self) -> None:
        if self.transport is None:
            udp = UdpTransport(buffer_size=self.config.buffer_size)
            await udp.connect(self.config.server_endpoint)
            self.transport = udp

    async def close(self) -> None:
        if self.transport is not None:
            await self.transport.close()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # =========================================================================
    # 基础收发
    # =========================================================================

    async def _send(self, code: RequestCode, args: Iterable[str] = ()) -> None:
        if self.transport is None:
            await self.connect()
        assert self.transport is not None
        packet = encode_request(code, args)
        await self.transport.send(packet, self.config.server_endpoint)
        logger.debug(f"发送 {code.name}: {len(packet)} 字节")

    async def _receive(self) -> bytes:
        assert self.transport is not None
        data, _ = await self.transport.receive(self.config.client_timeout)
        if is_error_response(data):
            raise ProtocolError("服务器返回错误响应")
        logger.debug(f"收到 {len(data)} 字节")
        return data

    async def request_raw(self, code: RequestCode, args: Iterable[str] = ()) -> bytes:
        """发送请求并返回原始响应负载。

        Raises:
            NetworkError: 发送失败或接收超时。
            ProtocolError: 服务器返回错误响应。
        """
        await self._send(code, args)
        return await self._receive()

    async def request(self, code: RequestCode, args: Iterable[str] = ()) -> Payload:
        """发送请求并按请求码约定解析响应。"""
        return decode_response(code, await self.request_raw(code, args))

    async def _text(self, code: RequestCode, args: Iterable[str] = ()) -> str:
        result = await self.request(code, args)
        assert isinstance(result, str)
        return result

    async def _uint32(self, code: RequestCode) -> int:
        result = await self.request(code)
        assert isinstance(result, int)
        return result

    # =========================================================================
    # 请求方法 (1-13)
    # =========================================================================

    async def get_time(self) -> str:
        return await self._text(RequestCode.GET_TIME)

    async def get_time_without_date(self) -> str:
        return await self._text(RequestCode.GET_TIME_WITHOUT_DATE)

    async def get_time_since_epoch(self) -> int:
        return await self._uint32(RequestCode.GET_TIME_SINCE_EPOCH)

    async def get_client_to_server_delay_estimation(
        self, samples: int = DEFAULT_SAMPLES
    ) -> float:
        """估计客户端到服务器的单向时延 (毫秒)。

        先连续发送 samples 个请求，再依次接收全部响应，
        返回服务端 tick 计数相邻差值的平均值。
        """
        code = RequestCode.GET_CLIENT_TO_SERVER_DELAY_ESTIMATION
        for _ in range(samples):
            await self._send(code)
        ticks = [decode_uint32(await self._receive()) for _ in range(samples)]
        return calc_avg_difference(ticks)

    async def measure_rtt(self, samples: int = DEFAULT_SAMPLES) -> float:
        """测量平均往返时间 (毫秒)。"""
        total = 0.0
        for _ in range(samples):
            t0 = time.perf_counter()
            await self.request_raw(RequestCode.MEASURE_RTT)
            total += time.perf_counter() - t0
        return total / samples * 1000 if samples else 0.0

    async def get_time_without_date_or_seconds(self) -> str:
        return await self._text(RequestCode.GET_TIME_WITHOUT_DATE_OR_SECONDS)

    async def get_year(self) -> str:
        return await self._text(RequestCode.GET_YEAR)

    async def get_month_and_day(self) -> str:
        return await self._text(RequestCode.GET_MONTH_AND_DAY)

    async def get_seconds_since_beginning_of_month(self) -> int:
        return await self._uint32(RequestCode.GET_SECONDS_SINCE_BEGINNING_OF_MONTH)

    async def get_week_of_year(self) -> int:
        return await self._uint32(RequestCode.GET_WEEK_OF_YEAR)

    async def get_daylight_savings(self) -> bool:
        return await self._text(RequestCode.GET_DAYLIGHT_SAVINGS) == "1"

    async def get_time_in_city(self, city: str) -> str:
        """查询城市本地时间，城市名先在本地规范化。"""
        return await self._text(
            RequestCode.GET_TIME_WITHOUT_DATE_IN_CITY, [normalize_city(city)]
        )

    async def measure_time_lap(self) -> str | None:
        """开始或结束一次计时。

        Returns:
            str | None: 开始计时时返回 None，结束时返回 "MM:SS"。
        """
        result = await self._text(RequestCode.MEASURE_TIME_LAP)
        if result == LAP_STARTED:
            return None
        return result
