# File: src/timesrv_core/protocols/codec.py
"""
时间协议编解码器 (Wire Codec)

负责请求/响应在 Python 数据结构与二进制字节流之间的转换。
本模块是无状态的 (Stateless)，不包含任何 socket 操作。

请求格式:
    byte 0:     RequestCode (有符号 8 位)
    bytes 1..N: 零个或多个 "\\0 <参数字节>" 段

响应格式由请求码决定 (见 constants.RESPONSE_KINDS)。
"""

import logging
import struct
from collections.abc import Iterable
from dataclasses import dataclass

from ..exceptions import ProtocolError
from .constants import (
    ARG_SEPARATOR,
    RESPONSE_KINDS,
    UINT32_MAX,
    UINT32_MAX_LEN,
    RequestCode,
    ResponseKind,
)

logger = logging.getLogger(__name__)

Payload = str | int | bytes


@dataclass(frozen=True)
class Request:
    """解码后的请求，创建后不可变。

    Attributes:
        code: 请求码。
        params: 按顺序排列的字符串参数。
    """

    code: RequestCode
    params: tuple[str, ...] = ()

    def __str__(self) -> str:
        if not self.params:
            return f"{self.code.name} [No Params]"
        return f"{self.code.name}, Params: [{', '.join(self.params)}]"


# =========================================================================
# Request
# =========================================================================


def encode_request(code: RequestCode, args: Iterable[str] = ()) -> bytes:
    """构建请求包。

    Args:
        code: 请求码。
        args: 参数列表，不允许包含 \\0。

    Returns:
        bytes: 请求字节流。无参数时恰好 1 字节。

    Raises:
        ProtocolError: 参数中包含分隔符。
    """
    pkt = bytearray(struct.pack("b", int(code)))
    for arg in args:
        arg_bytes = arg.encode("utf-8")
        if ARG_SEPARATOR in arg_bytes:
            raise ProtocolError(f"参数中不允许包含 \\0: {arg!r}")
        pkt.extend(ARG_SEPARATOR)
        pkt.extend(arg_bytes)
    return bytes(pkt)


def decode_request(data: bytes) -> Request:
    """解析请求包。该函数永远不会抛出异常。

    - 空输入解码为 ERROR。
    - 非法请求码解码为 ERROR。
    - 第一个分隔符之前的字节被忽略，空段不产生参数。

    Args:
        data: 接收到的 UDP 数据包。

    Returns:
        Request: 解码结果。
    """
    if not data:
        return Request(RequestCode.ERROR)

    raw_code = struct.unpack("b", data[:1])[0]
    try:
        code = RequestCode(raw_code)
    except ValueError:
        logger.debug("未知请求码: %d", raw_code)
        return Request(RequestCode.ERROR)

    segments = data[1:].split(ARG_SEPARATOR)[1:]
    params = tuple(
        seg.decode("utf-8", errors="replace") for seg in segments if seg
    )
    return Request(code, params)


# =========================================================================
# Response
# =========================================================================


def encode_uint32(value: int) -> bytes:
    """将 uint32 编码为去除前导零的大端字节序 (1-4 字节)。"""
    if isinstance(value, bool) or not 0 <= value <= UINT32_MAX:
        raise ProtocolError(f"整数超出 uint32 范围: {value!r}")
    return struct.pack(">I", value).lstrip(b"\x00") or b"\x00"


def decode_uint32(payload: bytes) -> int:
    """解析整数响应。

    Raises:
        ProtocolError: 负载为空或超过 4 字节。
    """
    if not payload or len(payload) > UINT32_MAX_LEN:
        raise ProtocolError(f"整数响应长度无效: {len(payload)} 字节")
    return int.from_bytes(payload, byteorder="big")


def encode_response(value: Payload) -> bytes:
    """构建响应包。

    Args:
        value: str (UTF-8 文本) / int (uint32) / bytes (原样透传)。

    Returns:
        bytes: 响应字节流。

    Raises:
        ProtocolError: 不支持的类型或整数越界。
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, int):
        return encode_uint32(value)
    raise ProtocolError(f"不支持的响应类型: {type(value).__name__}")


def decode_response(code: RequestCode, payload: bytes) -> Payload:
    """按请求码约定的负载类型解析响应 (客户端使用)。

    Raises:
        ProtocolError: 请求码没有约定的响应类型，或整数负载非法。
    """
    kind = RESPONSE_KINDS.get(code)
    if kind is None:
        raise ProtocolError(f"请求码 {code.name} 没有响应约定")
    if kind is ResponseKind.UINT32:
        return decode_uint32(payload)
    if kind is ResponseKind.TEXT:
        return payload.decode("utf-8", errors="replace")
    return payload


def is_error_response(data: bytes) -> bool:
    """判断响应是否为错误包 (空或首字节为 ERROR 码)。"""
    if not data:
        return True
    return struct.unpack("b", data[:1])[0] == RequestCode.ERROR
