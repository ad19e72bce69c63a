# File: src/timesrv_core/dispatcher.py
"""
时间服务核心库 - 请求分发器 (Dispatcher)

无状态路由: RequestCode -> 处理器 -> 编码后的响应。
唯一的共享可变状态 (计时存储) 由外部注入。
"""

import logging
from collections.abc import Callable

from . import handlers, timezone
from .exceptions import DispatchError, RequestError
from .laptimer import EndpointKey, LapTimerStore
from .protocols.codec import Payload, Request, encode_response
from .protocols.constants import RESPONSE_KINDS, RequestCode, ResponseKind

logger = logging.getLogger(__name__)

Handler = Callable[[Request, EndpointKey], Payload]

_KIND_TYPES: dict[ResponseKind, type] = {
    ResponseKind.TEXT: str,
    ResponseKind.UINT32: int,
    ResponseKind.RAW: bytes,
}


def _ignore_request(fn: Callable[[], Payload]) -> Handler:
    return lambda request, endpoint: fn()


class Dispatcher:
    """将解码后的请求映射到对应的处理器。"""

    def __init__(self, lap_store: LapTimerStore) -> None:
        """初始化分发表。

        Args:
            lap_store: 圈速计时存储 (MeasureTimeLap 使用)。
        """
        self.lap_store = lap_store

        # 只格式化主机当前时间的处理器，不关心请求参数与端点
        simple: dict[RequestCode, Callable[[], Payload]] = {
            RequestCode.GET_TIME: handlers.get_time,
            RequestCode.GET_TIME_WITHOUT_DATE: handlers.get_time_without_date,
            RequestCode.GET_TIME_SINCE_EPOCH: handlers.get_time_since_epoch,
            RequestCode.GET_CLIENT_TO_SERVER_DELAY_ESTIMATION: (
                handlers.get_client_to_server_delay_estimation
            ),
            RequestCode.MEASURE_RTT: handlers.measure_rtt,
            RequestCode.GET_TIME_WITHOUT_DATE_OR_SECONDS: (
                handlers.get_time_without_date_or_seconds
            ),
            RequestCode.GET_YEAR: handlers.get_year,
            RequestCode.GET_MONTH_AND_DAY: handlers.get_month_and_day,
            RequestCode.GET_SECONDS_SINCE_BEGINNING_OF_MONTH: (
                timezone.seconds_since_month_start
            ),
            RequestCode.GET_WEEK_OF_YEAR: timezone.week_of_year,
            RequestCode.GET_DAYLIGHT_SAVINGS: handlers.get_daylight_savings,
        }

        self._handlers: dict[RequestCode, Handler] = {
            code: _ignore_request(fn) for code, fn in simple.items()
        }
        self._handlers[RequestCode.GET_TIME_WITHOUT_DATE_IN_CITY] = self._time_in_city
        self._handlers[RequestCode.MEASURE_TIME_LAP] = self._time_lap

    @property
    def supported_codes(self) -> frozenset[RequestCode]:
        return frozenset(self._handlers)

    def handle(self, request: Request, endpoint: EndpointKey) -> Payload:
        """执行处理器并返回类型化结果。

        Args:
            request: 解码后的请求。
            endpoint: 请求方的 (地址, 端口)。

        Returns:
            Payload: str / int / bytes，类型由请求码约定。

        Raises:
            DispatchError: 请求码没有对应的处理器，或返回类型不符。
            RequestError: 请求参数校验失败。
        """
        handler = self._handlers.get(request.code)
        if handler is None:
            raise DispatchError(f"没有可用的处理器: {request.code.name}")

        result = handler(request, endpoint)

        expected = _KIND_TYPES[RESPONSE_KINDS[request.code]]
        if not isinstance(result, expected) or isinstance(result, bool):
            raise DispatchError(
                f"{request.code.name} 处理器返回了 {type(result).__name__}，"
                f"约定为 {expected.__name__}"
            )
        return result

    def dispatch(self, request: Request, endpoint: EndpointKey) -> bytes:
        """分发请求并返回编码后的响应字节流。"""
        result = self.handle(request, endpoint)
        logger.debug("%s -> %r", request.code.name, result)
        return encode_response(result)

    def _time_in_city(self, request: Request, endpoint: EndpointKey) -> str:
        if not request.params:
            raise RequestError(
                "GetTimeWithoutDateInCity 缺少城市参数", code=int(request.code)
            )
        return timezone.local_time_in_city(request.params[0])

    def _time_lap(self, request: Request, endpoint: EndpointKey) -> str:
        return self.lap_store.on_lap_request(endpoint)
