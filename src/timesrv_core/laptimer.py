# File: src/timesrv_core/laptimer.py
"""
时间服务核心库 - 圈速计时器 (Lap Timer Store)

按客户端端点 (地址, 端口) 维护的开始/停止计时器。
第一次请求开始计时，第二次请求返回经过时间并删除条目；
闲置超过过期时间的条目在每次调用时被惰性清理。

该对象由 TimeServer 持有并注入 Dispatcher，不是进程级单例。
所有访问都通过同一把锁串行化，锁从不跨越 I/O。
"""

import logging
import threading
import time
from collections.abc import Callable

from .protocols.constants import LAP_EXPIRY_SECONDS, LAP_STARTED
from .utils import format_lap

logger = logging.getLogger(__name__)

EndpointKey = tuple[str, int]


class LapTimerStore:
    """线程安全的端点计时存储。

    对于同一个端点，条目严格在 "不存在" 和 "存在" 之间交替:
    开始请求使其存在，停止请求或过期清理使其消失。
    过期清理不会产生任何响应，下一次请求被视为新的开始。
    """

    def __init__(
        self,
        expiry: float = LAP_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """初始化计时存储。

        Args:
            expiry: 条目闲置多少秒后过期。
            clock: 单调时钟，测试中可注入。
        """
        self.expiry = expiry
        self._clock = clock
        self._entries: dict[EndpointKey, float] = {}
        self._lock = threading.Lock()

    def on_lap_request(self, endpoint: EndpointKey) -> str:
        """处理一次计时请求。

        Args:
            endpoint: 客户端的 (地址, 端口)。

        Returns:
            str: 首次请求返回 LAP_STARTED；第二次返回 "MM:SS" 格式的经过时间。
        """
        with self._lock:
            now = self._clock()
            self._sweep_locked(now)

            started_at = self._entries.pop(endpoint, None)
            if started_at is None:
                self._entries[endpoint] = now
                logger.debug("计时开始: %s", endpoint)
                return LAP_STARTED

        elapsed = int(now - started_at)
        logger.debug("计时结束: %s, 经过 %d 秒", endpoint, elapsed)
        return format_lap(elapsed)

    def sweep(self) -> int:
        """立即清理所有过期条目。

        Returns:
            int: 被清理的条目数量。
        """
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        """[Internal] 清理过期条目，调用者必须持有锁。"""
        expired = [
            key
            for key, started_at in self._entries.items()
            if now - started_at > self.expiry
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("清理过期计时条目 %d 个", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, endpoint: object) -> bool:
        with self._lock:
            return endpoint in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
