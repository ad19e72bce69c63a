# src/timesrv_core/network.py
"""
时间服务核心库 - 网络模块 (Network) [Asyncio Edition]

封装 UDP Socket 的创建、绑定、发送和接收逻辑。
该模块屏蔽了底层 Socket 的复杂性，向上层提供纯粹的 bytes 收发接口:

    receive() -> (bytes, 对端地址)
    send(bytes, 目标地址)

所有失败都以 NetworkError 抛出，由调用方决定是否继续。
"""

import abc
import asyncio
import logging
from typing import Optional, Tuple, Union, cast

from .exceptions import NetworkError
from .protocols.constants import BUFFER_SIZE

logger = logging.getLogger(__name__)

Endpoint = Tuple[str, int]


class TimeUdpProtocol(asyncio.DatagramProtocol):
    """
    asyncio UDP 协议适配器。
    将回调风格的 datagram_received 转换为 Queue 模式，供上层 await 使用。
    """

    def __init__(self, queue_size: int = 128, buffer_size: int = BUFFER_SIZE):
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.buffer_size = buffer_size
        # 队列内容可以是数据元组，也可以是异常对象（用于快速失败）
        self.queue: asyncio.Queue[Union[Tuple[bytes, Endpoint], Exception]] = (
            asyncio.Queue(maxsize=queue_size)
        )

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = cast(asyncio.DatagramTransport, transport)
        logger.debug("UDP Transport 已建立")

    def datagram_received(self, data: bytes, addr: Endpoint) -> None:
        """接收数据并放入队列，超长数据截断到缓冲区大小"""
        if len(data) > self.buffer_size:
            logger.debug(f"数据包超长 ({len(data)} 字节)，截断为 {self.buffer_size}")
            data = data[: self.buffer_size]
        try:
            self.queue.put_nowait((data, (addr[0], addr[1])))
        except asyncio.QueueFull:
            # 丢弃新包并记录警告，避免阻塞协议线程
            logger.warning("UDP 接收队列已满，丢弃数据包")

    def error_received(self, exc: Exception) -> None:
        """处理 UDP 错误 (如 ICMP 端口不可达)"""
        logger.error(f"UDP 错误: {exc}")
        self._propagate_error(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        """处理连接断开"""
        if exc:
            logger.warning(f"UDP 连接断开: {exc}")
            self._propagate_error(exc)
        else:
            logger.debug("UDP 连接已正常关闭")
            self._propagate_error(NetworkError("连接已关闭"))
        self.transport = None

    def _propagate_error(self, exc: Exception) -> None:
        """辅助方法：将底层错误立即传播给上层消费者"""
        try:
            self.queue.put_nowait(exc)
        except asyncio.QueueFull:
            # 队列已满时移除最旧的一项，保证错误能被传达
            self.queue.get_nowait()
            self.queue.put_nowait(exc)


class BaseTransport(abc.ABC):
    """传输层抽象接口，核心引擎与客户端只依赖这三个操作。"""

    @abc.abstractmethod
    async def receive(self, timeout: Optional[float] = None) -> Tuple[bytes, Endpoint]:
        """[Abstract] 接收一个数据包。

        Args:
            timeout: 超时秒数，None 表示一直等待。

        Raises:
            NetworkError: 接收失败或超时。
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def send(self, data: bytes, endpoint: Optional[Endpoint] = None) -> None:
        """[Abstract] 发送一个数据包。

        Args:
            data: 负载字节。
            endpoint: 目标地址；客户端模式下可省略。

        Raises:
            NetworkError: 发送失败。
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def close(self) -> None:
        """[Abstract] 释放底层资源。"""
        raise NotImplementedError

    @property
    def is_closed(self) -> bool:
        """底层连接是否已断开，此后 receive() 不会再收到数据。"""
        return False


class UdpTransport(BaseTransport):
    """
    封装 asyncio UDP 操作的传输层实现。

    服务端使用 bind()，客户端使用 connect()。
    """

    def __init__(self, queue_size: int = 128, buffer_size: int = BUFFER_SIZE):
        self.queue_size = queue_size
        self.buffer_size = buffer_size
        self.protocol: Optional[TimeUdpProtocol] = None
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.remote: Optional[Endpoint] = None

    @property
    def local_address(self) -> Optional[Endpoint]:
        """实际绑定的本地地址 (端口为 0 时可由此获取系统分配的端口)"""
        if not self.transport:
            return None
        sockname = self.transport.get_extra_info("sockname")
        return (sockname[0], sockname[1])

    @property
    def is_closed(self) -> bool:
        return self.protocol is None or self.protocol.transport is None

    async def bind(self, local_addr: Endpoint) -> None:
        """服务端模式：绑定本地地址。"""
        await self._open(local_addr=local_addr)
        logger.debug(f"Async Socket 绑定成功: {self.local_address}")

    async def connect(self, remote_addr: Endpoint) -> None:
        """客户端模式：设置默认的对端地址。"""
        await self._open(remote_addr=remote_addr)
        self.remote = remote_addr
        logger.debug(f"Async Socket 已连接: {remote_addr}")

    async def _open(self, **kwargs) -> None:
        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.create_datagram_endpoint(
                lambda: TimeUdpProtocol(self.queue_size, self.buffer_size),
                **kwargs,
            )
            self.transport = cast(asyncio.DatagramTransport, transport)
            self.protocol = cast(TimeUdpProtocol, protocol)
        except Exception as e:
            await self.close()
            raise NetworkError(f"Socket 初始化失败 {kwargs}: {e}") from e

    async def send(self, data: bytes, endpoint: Optional[Endpoint] = None) -> None:
        """
        发送 UDP 数据包。
        """
        if not self.transport or self.transport.is_closing():
            raise NetworkError("Transport 未初始化或已关闭")

        try:
            # sendto 是同步非阻塞的，直接调用
            if self.remote is not None:
                self.transport.sendto(data)
            else:
                if endpoint is None:
                    raise NetworkError("未指定目标地址")
                self.transport.sendto(data, endpoint)
        except NetworkError:
            raise
        except Exception as e:
            raise NetworkError(f"发送失败: {e}") from e

    async def receive(self, timeout: Optional[float] = None) -> Tuple[bytes, Endpoint]:
        """
        接收 UDP 数据包 (Async)。

        使用 asyncio.wait_for 实现超时控制。
        """
        if not self.protocol:
            raise NetworkError("Protocol 未初始化")
        # 连接断开且积压数据已取完，继续等待只会永久挂起
        if self.protocol.transport is None and self.protocol.queue.empty():
            raise NetworkError("连接已关闭")

        try:
            item = await asyncio.wait_for(self.protocol.queue.get(), timeout=timeout)

            # 检查取出来的是数据还是错误
            if isinstance(item, Exception):
                raise item

            return item

        except asyncio.TimeoutError:
            raise NetworkError(f"接收超时 ({timeout}s)") from None
        except NetworkError:
            raise
        except Exception as e:
            raise NetworkError(f"接收错误: {e}") from e

    async def close(self) -> None:
        """关闭 Transport"""
        if self.transport:
            self.transport.close()
            self.transport = None
            logger.debug("UDP Transport 已关闭")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
