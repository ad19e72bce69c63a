# src/timesrv_core/protocols/constants.py
"""
时间协议层 - 常量定义

本模块定义了请求码、响应负载类型以及线格式中的固定值。
"""

from enum import Enum, IntEnum, auto

# =========================================================================
# 1. 请求码 (Request Codes)
# =========================================================================


class RequestCode(IntEnum):
    """请求码枚举。

    线格式中以有符号 8 位整数表示，位于请求包第 0 字节。
    ERROR 为保留值，合法客户端永远不会发送。
    """

    ERROR = -1
    DEFAULT = 0
    GET_TIME = 1
    GET_TIME_WITHOUT_DATE = 2
    GET_TIME_SINCE_EPOCH = 3
    GET_CLIENT_TO_SERVER_DELAY_ESTIMATION = 4
    MEASURE_RTT = 5
    GET_TIME_WITHOUT_DATE_OR_SECONDS = 6
    GET_YEAR = 7
    GET_MONTH_AND_DAY = 8
    GET_SECONDS_SINCE_BEGINNING_OF_MONTH = 9
    GET_WEEK_OF_YEAR = 10
    GET_DAYLIGHT_SAVINGS = 11
    GET_TIME_WITHOUT_DATE_IN_CITY = 12
    MEASURE_TIME_LAP = 13

    @property
    def description(self) -> str:
        """获取请求码对应的人类可读描述。

        Returns:
            str: 对应的描述文本。
        """
        _DESC_MAP = {
            -1: "Error",
            0: "Default",
            1: "Current date and time",
            2: "Time only (no date)",
            3: "Seconds since epoch",
            4: "Client-to-server delay",
            5: "Round-trip time (RTT)",
            6: "Time without seconds",
            7: "Current year",
            8: "Month and day",
            9: "Seconds since month start",
            10: "Week number of year",
            11: "Daylight savings status",
            12: "Time in another city",
            13: "Measure time lap",
        }
        return _DESC_MAP.get(self.value, f"Unknown ({self.value})")


class ResponseKind(Enum):
    """响应负载类型。负载本身不自描述，由请求码决定。"""

    TEXT = auto()
    """UTF-8 文本，无结束符。"""

    UINT32 = auto()
    """大端 uint32，去除前导零字节 (1-4 字节)。"""

    RAW = auto()
    """原始字节，原样透传。"""


# 每个请求码的固定负载约定
RESPONSE_KINDS: dict[RequestCode, ResponseKind] = {
    RequestCode.GET_TIME: ResponseKind.TEXT,
    RequestCode.GET_TIME_WITHOUT_DATE: ResponseKind.TEXT,
    RequestCode.GET_TIME_SINCE_EPOCH: ResponseKind.UINT32,
    RequestCode.GET_CLIENT_TO_SERVER_DELAY_ESTIMATION: ResponseKind.UINT32,
    RequestCode.MEASURE_RTT: ResponseKind.RAW,
    RequestCode.GET_TIME_WITHOUT_DATE_OR_SECONDS: ResponseKind.TEXT,
    RequestCode.GET_YEAR: ResponseKind.TEXT,
    RequestCode.GET_MONTH_AND_DAY: ResponseKind.TEXT,
    RequestCode.GET_SECONDS_SINCE_BEGINNING_OF_MONTH: ResponseKind.UINT32,
    RequestCode.GET_WEEK_OF_YEAR: ResponseKind.UINT32,
    RequestCode.GET_DAYLIGHT_SAVINGS: ResponseKind.TEXT,
    RequestCode.GET_TIME_WITHOUT_DATE_IN_CITY: ResponseKind.TEXT,
    RequestCode.MEASURE_TIME_LAP: ResponseKind.TEXT,
}

# =========================================================================
# 2. 线格式常量
# =========================================================================

ARG_SEPARATOR = b"\x00"

UINT32_MAX = 0xFFFFFFFF
UINT32_MAX_LEN = 4

# 错误响应: 首字节为 ERROR 码 (-1 即 0xFF)
ERROR_RESPONSE = b"\xff"

# RTT Pong: 单字节 0
PONG = b"\x00"

# 接收缓冲区大小，超出部分截断
BUFFER_SIZE = 255

# =========================================================================
# 3. 业务常量
# =========================================================================

DEFAULT_PORT = 27015

# 计时器首次请求的响应文本
LAP_STARTED = "Timer started"

# 计时条目闲置超过该秒数即被清理
LAP_EXPIRY_SECONDS = 180.0

# 客户端默认采样次数 (时延估计 / RTT)
DEFAULT_SAMPLES = 100
