"""
CTS 杠杆交易代理 - 信号源基类

信号源只输出离散信号，不能下单，也不感知账户余额。
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from cts.common.enums import Signal

if TYPE_CHECKING:
    from cts.common.config import StrategyConfig
    from cts.core.execution.exchange import ExchangeClient


class SignalSource(ABC):
    """
    信号源抽象基类

    子类必须：
    - 设置 NAME（注册表的键）
    - 实现 from_config() 和 signal()
    """

    NAME: str = ""

    @property
    def name(self) -> str:
        """策略名称"""
        return self.NAME

    @classmethod
    @abstractmethod
    def from_config(
        cls, exchange: "ExchangeClient", config: "StrategyConfig"
    ) -> "SignalSource":
        """由配置构建"""
        pass

    @abstractmethod
    async def signal(self) -> Signal:
        """
        生成当前信号

        Raises:
            StrategyError: 行情获取失败等
        """
        pass
