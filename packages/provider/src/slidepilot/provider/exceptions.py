"""Task Source 异常体系

Task Poller 把所有 TaskSourceError 视为瞬时失败，按退避重试；
只有轮询上限被耗尽时才转换为 generation:error。
"""


class TaskSourceError(Exception):
    """Task Source 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class TaskSourceUnreachableError(TaskSourceError):
    """Task Source 不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, base_url: str, original_error: Exception) -> None:
        """
        Args:
            base_url: 尝试连接的地址
            original_error: 原始异常
        """
        super().__init__(
            f"Task source unreachable: {base_url} -- {original_error}",
            recoverable=True,
        )
        self.base_url = base_url
        self.original_error = original_error


class TaskSourceHTTPError(TaskSourceError):
    """Task Source 返回非 2xx 状态码

    5xx / 429 视为可恢复，其余 4xx 视为不可恢复。
    """

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(
            f"Task source returned {status_code}: {body[:200]}",
            recoverable=status_code >= 500 or status_code == 429,
        )
        self.status_code = status_code


class TaskSourceResponseError(TaskSourceError):
    """响应体不是 JSON 对象或缺少必要字段"""

    def __init__(self, message: str = "Malformed task source response") -> None:
        super().__init__(message, recoverable=True)
