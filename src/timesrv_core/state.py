# File: src/timesrv_core/state.py
"""
时间服务核心库 - 状态模块

负责定义和存储服务端的运行状态与统计计数。
本模块不包含业务逻辑，仅作为数据容器供 Core 读写。
"""

from dataclasses import dataclass
from enum import Enum, auto


class ServerStatus(Enum):
    """服务端的生命周期状态枚举。

    状态流转示意:
    IDLE -> LISTENING -> STOPPED
              |
              v
            ERROR
    """

    IDLE = auto()
    """初始状态，引擎已实例化但尚未绑定端口。"""

    LISTENING = auto()
    """端口已绑定，正在等待客户端请求。"""

    STOPPED = auto()
    """已停止，端口已释放。"""

    ERROR = auto()
    """发生了不可恢复的技术性错误 (如端口绑定失败)。"""


@dataclass
class ServerState:
    """服务端的易变状态数据。

    Attributes:
        status: 当前生命周期状态。
        requests_received: 收到的数据包总数。
        responses_sent: 成功发送的响应数。
        dispatch_failures: 解码/分发/发送失败的次数。
        last_error: 最近一次错误的描述，用于日志或 UI 显示。
    """

    status: ServerStatus = ServerStatus.IDLE
    requests_received: int = 0
    responses_sent: int = 0
    dispatch_failures: int = 0
    last_error: str = ""

    @property
    def is_listening(self) -> bool:
        return self.status is ServerStatus.LISTENING
