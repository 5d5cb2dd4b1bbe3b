"""
CTS 杠杆交易代理 - 通知基类
"""

from abc import ABC, abstractmethod

from cts.common.logging import get_logger

logger = get_logger(__name__)


class Notifier(ABC):
    """
    通知渠道抽象基类

    push 失败时抛出 NotifierError，由调用方决定是否忽略。
    """

    @abstractmethod
    async def push(self, text: str) -> None:
        """推送一条纯文本消息"""
        pass

    async def close(self) -> None:
        """释放资源"""
        pass


class LogNotifier(Notifier):
    """未配置推送渠道时使用：消息只写入日志"""

    def __init__(self):
        self.messages: list[str] = []

    async def push(self, text: str) -> None:
        self.messages.append(text)
        logger.info(f"通知: {text}", extra={"channel": "log"})
