# File: src/timesrv_core/core.py
"""
时间服务核心引擎 (Core Engine)

职责：
1. 资源组装：Config + Transport + LapTimerStore + Dispatcher + State。
2. 请求循环：接收 -> 解码 -> 分发 -> 编码 -> 发送。
3. 生命周期：Start -> Serve -> Stop。

任何单个请求的失败 (解码、分发、发送) 都只记录日志，不会中断服务循环。
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from .config import ServerConfig
from .dispatcher import Dispatcher
from .exceptions import NetworkError, TimeServerError
from .laptimer import LapTimerStore
from .network import BaseTransport, Endpoint, UdpTransport
from .protocols.codec import decode_request
from .protocols.constants import ERROR_RESPONSE
from .state import ServerState, ServerStatus

logger = logging.getLogger(__name__)

# 定义回调函数类型别名：支持同步或异步函数
StatusCallback = Callable[[ServerStatus, str], Any | Awaitable[Any]]


class TimeServer:
    """UDP 时间服务引擎 (Async)。"""

    def __init__(
        self,
        config: ServerConfig,
        transport: BaseTransport | None = None,
        lap_store: LapTimerStore | None = None,
        status_callback: StatusCallback | None = None,
    ) -> None:
        """初始化服务引擎。

        Args:
            config: 全局配置对象。
            transport: 传输层实现，默认为 UdpTransport (start 时绑定)。
            lap_store: 圈速计时存储，默认按配置新建。
            status_callback: 初始状态回调，也可使用 add_listener 注册。
        """
        self.config = config
        self._listeners: list[StatusCallback] = []
        if status_callback:
            self.add_listener(status_callback)

        self._state = ServerState()
        self.transport = transport
        self._owns_transport = False
        self.lap_store = (
            lap_store if lap_store is not None else LapTimerStore(expiry=config.lap_expiry)
        )
        self.dispatcher = Dispatcher(self.lap_store)
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> ServerState:
        """获取当前服务状态的只读副本。"""
        return replace(self._state)

    def add_listener(self, callback: StatusCallback) -> None:
        """注册状态变更监听器。"""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: StatusCallback) -> None:
        """移除状态变更监听器。"""
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def start(self) -> None:
        """绑定端口，进入 LISTENING 状态。

        Raises:
            NetworkError: 端口绑定失败。
        """
        if self._state.is_listening:
            return

        if self.transport is None:
            udp = UdpTransport(self.config.queue_size, self.config.buffer_size)
            try:
                await udp.bind(self.config.bind_address)
            except NetworkError as e:
                self._state.last_error = str(e)
                self._update_status(ServerStatus.ERROR, f"端口绑定失败: {e}")
                raise
            self.transport = udp
            self._owns_transport = True

        self._stop_event.clear()
        self._update_status(
            ServerStatus.LISTENING,
            f"等待客户端请求 ({self.config.bind_ip}:{self.config.server_port})",
        )

    def handle_datagram(self, data: bytes, endpoint: Endpoint) -> bytes | None:
        """处理单个请求包 (纯计算，不涉及 I/O)。

        Args:
            data: 请求字节流。
            endpoint: 请求方的 (地址, 端口)。

        Returns:
            bytes | None: 响应字节流；失败时返回 None (不响应)，
            若配置了 reply_on_error 则返回错误包。
        """
        self._state.requests_received += 1
        request = decode_request(data)
        logger.debug(f"收到 {len(data)} 字节 from {endpoint} | {request}")

        try:
            return self.dispatcher.dispatch(request, endpoint)
        except TimeServerError as e:
            self._record_failure(f"分发失败 ({request.code.name}): {e}")
            return ERROR_RESPONSE if self.config.reply_on_error else None

    async def serve_once(self) -> bool:
        """接收并处理一个请求。

        Returns:
            bool: 已发送响应返回 True，否则返回 False。
        """
        if self.transport is None:
            raise NetworkError("Transport 未初始化，请先调用 start()")

        try:
            data, endpoint = await self.transport.receive()
        except NetworkError as e:
            if not self._stop_event.is_set():
                self._record_failure(f"接收失败: {e}")
            return False

        response = self.handle_datagram(data, endpoint)
        if response is None:
            return False

        try:
            await self.transport.send(response, endpoint)
        except NetworkError as e:
            self._record_failure(f"发送失败: {e}")
            return False

        self._state.responses_sent += 1
        logger.debug(f"发送 {len(response)} 字节 to {endpoint}")
        return True

    async def serve_forever(self) -> None:
        """服务主循环，直到调用 stop()。"""
        await self.start()
        while not self._stop_event.is_set():
            await self.serve_once()
            if (
                self.transport is not None
                and self.transport.is_closed
                and not self._stop_event.is_set()
            ):
                await self._rebind()
        logger.debug("服务循环已退出")

    async def _rebind(self) -> None:
        """底层连接意外断开后重新绑定端口。

        Raises:
            NetworkError: 传输层由外部注入 (无法重建)，或重新绑定失败。
        """
        self._update_status(ServerStatus.ERROR, "UDP 连接意外断开")
        if not self._owns_transport:
            raise NetworkError("外部传输层已断开，无法重新绑定")

        assert self.transport is not None
        await self.transport.close()
        self.transport = None
        await self.start()

    async def stop(self) -> None:
        """停止引擎并释放端口。"""
        self._stop_event.set()
        if self.transport is not None:
            await self.transport.close()
        self._update_status(ServerStatus.STOPPED, "已停止")

    def _record_failure(self, msg: str) -> None:
        self._state.dispatch_failures += 1
        self._state.last_error = msg
        logger.warning(msg)

    def _update_status(self, status: ServerStatus, msg: str) -> None:
        """更新内部状态并异步触发所有回调。"""
        self._state.status = status
        logger.info(f"[{status.name}] {msg}")

        for callback in self._listeners:
            try:
                if inspect.iscoroutinefunction(callback):
                    asyncio.create_task(callback(status, msg))  # type: ignore
                else:
                    loop = asyncio.get_running_loop()
                    loop.call_soon(callback, status, msg)
            except RuntimeError:
                # 应对 loop 尚未运行或已关闭的边缘情况
                logger.debug("事件循环未运行，跳过状态回调")
            except Exception as e:
                logger.error(f"回调执行异常: {e}")
