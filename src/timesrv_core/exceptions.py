# File: src/timesrv_core/exceptions.py
"""
时间服务核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类。所有异常都局限于单个请求，
服务循环捕获后记录日志并继续运行，不会导致进程退出。
"""


class TimeServerError(Exception):
    """时间服务核心库所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 timesrv-core 抛出的已知错误。
    """

    pass


class ConfigError(TimeServerError):
    """配置加载或校验失败。

    触发场景:
    1. 字段格式错误 (如端口越界、IP 地址非法)。
    2. 找不到配置文件或 Profile。
    3. 指定的网卡不存在或没有 IPv4 地址。
    """

    pass


class NetworkError(TimeServerError):
    """传输层错误 (I/O 级别)。

    触发场景:
    1. Socket 创建失败或端口被占用。
    2. 发送 (send) 或 接收 (recv) 失败、超时。

    注意: 服务端遇到此类错误只记录日志，服务循环继续。
    """

    pass


class ProtocolError(TimeServerError):
    """编解码错误 (线格式级别)。

    触发场景:
    1. 请求参数中包含分隔符 \\0，无法编码。
    2. 整数响应长度为 0 或超过 4 字节。
    3. 整数超出 uint32 范围。
    4. 客户端收到错误响应 (首字节为 Error 码)。
    """

    pass


class DispatchError(TimeServerError):
    """分发失败。

    请求码没有对应的处理器 (Error / Default / 未知码)，
    或处理器返回了与请求码约定不符的负载类型。服务端不发送响应。
    """

    pass


class RequestError(TimeServerError):
    """请求校验失败 (业务层面)。

    例如 GetTimeWithoutDateInCity 没有携带城市参数。
    """

    def __init__(self, message: str, code: int | None = None) -> None:
        """初始化请求错误。

        Args:
            message: 错误描述信息。
            code: 触发错误的原始请求码 (可选)。
        """
        super().__init__(message)
        self.code = code
