# src/timesrv_core/protocols/__init__.py
"""
时间协议层 (Protocol Layer)

本包负责请求/响应数据包的纯粹构建 (Encode) 与解析 (Decode)。

- 不包含任何 socket 操作或网络 I/O。
- 不包含任何状态管理 (State)。
- 不依赖于 core 或 network 层。
"""

from . import constants
from .codec import (
    Payload,
    Request,
    decode_request,
    decode_response,
    decode_uint32,
    encode_request,
    encode_response,
    encode_uint32,
    is_error_response,
)
from .constants import RESPONSE_KINDS, RequestCode, ResponseKind

# 公共 API
__all__ = [
    "constants",
    "Payload",
    "Request",
    "RequestCode",
    "ResponseKind",
    "RESPONSE_KINDS",
    "encode_request",
    "decode_request",
    "encode_response",
    "decode_response",
    "encode_uint32",
    "decode_uint32",
    "is_error_response",
]
