"""
CTS 杠杆交易代理 - ripdog 策略

同时观察 DOGE 和 XRP 的 24 小时涨跌幅：
两者都超过 +阈值 时看涨，都低于 -阈值 时看跌。
"""

from collections.abc import Sequence

from cts.common.config import StrategyConfig
from cts.common.enums import Signal
from cts.common.exceptions import StrategyError, TradingSystemError
from cts.common.logging import get_logger
from cts.core.execution.exchange import ExchangeClient

from .base import SignalSource

logger = get_logger(__name__)


class RippleDogeStrategy(SignalSource):
    """参考瑞波币和狗狗币走势的简单策略"""

    NAME = "ripdog"

    def __init__(
        self,
        exchange: ExchangeClient,
        threshold: float = 5.0,
        watch_symbols: Sequence[str] = ("doge_usdt", "xrp_usdt"),
    ):
        if not watch_symbols:
            raise StrategyError("watch_symbols 不能为空")
        self.exchange = exchange
        self.threshold = threshold
        self.watch_symbols = list(watch_symbols)

    @classmethod
    def from_config(cls, exchange: ExchangeClient, config: StrategyConfig) -> "RippleDogeStrategy":
        return cls(exchange, threshold=config.threshold, watch_symbols=config.watch_symbols)

    async def signal(self) -> Signal:
        changes: list[float] = []
        for symbol in self.watch_symbols:
            try:
                ticker = await self.exchange.get_ticker(symbol)
            except TradingSystemError as e:
                raise StrategyError(
                    f"获取行情失败: {symbol}, {e}",
                    {"strategy": self.name, "symbol": symbol},
                ) from e
            changes.append(ticker.percent_change)

        if all(c > self.threshold for c in changes):
            signal = Signal.RISE
        elif all(c < -self.threshold for c in changes):
            signal = Signal.FALL
        else:
            signal = Signal.NONE

        logger.debug(
            f"策略信号: {self.name} {signal.value}",
            extra={"strategy": self.name, "changes": changes},
        )
        return signal
