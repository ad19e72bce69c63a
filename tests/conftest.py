# tests/conftest.py
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from timesrv_core.config import ServerConfig


class FakeClock:
    """可手动推进的单调时钟"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def valid_config():
    """[Fixture] 返回一个本地回环的 ServerConfig 对象。"""
    return ServerConfig(
        bind_ip="127.0.0.1",
        server_port=27015,
        server_address="127.0.0.1",
        client_timeout=1.0,
    )


@pytest.fixture
def endpoint():
    return ("127.0.0.1", 50000)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def mock_transport():
    """网络发送和接收均为 AsyncMock 的传输层"""
    transport = MagicMock()
    transport.send = AsyncMock()
    transport.receive = AsyncMock()
    transport.close = AsyncMock()
    transport.is_closed = False
    return transport
