"""
CTS 杠杆交易代理 - 信号源

所有信号源实现同一个 SignalSource 接口，通过名称选择。
"""

from cts.common.config import StrategyConfig
from cts.core.execution.exchange import ExchangeClient

from .base import SignalSource
from .ripdog import RippleDogeStrategy

# 名称 -> 信号源类
REGISTRY: dict[str, type[SignalSource]] = {
    RippleDogeStrategy.NAME: RippleDogeStrategy,
}


def strategies(
    exchange: ExchangeClient,
    config: StrategyConfig | None = None,
) -> dict[str, SignalSource]:
    """
    构建全部可用信号源

    Args:
        exchange: 行情来源
        config: 信号源配置，缺省使用默认值

    Returns:
        名称 -> 信号源
    """
    config = config or StrategyConfig()
    return {name: cls.from_config(exchange, config) for name, cls in REGISTRY.items()}


def available() -> list[str]:
    """全部可用信号源名称"""
    return sorted(REGISTRY)


__all__ = [
    "SignalSource",
    "RippleDogeStrategy",
    "REGISTRY",
    "strategies",
    "available",
]
