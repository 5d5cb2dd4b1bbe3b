"""调度器测试"""

import pytest

from cts.agent import TradingAgent
from cts.common.enums import Signal
from cts.common.exceptions import StrategyError, SymbolValidationError
from cts.core.execution.engine import ExecutionEngine
from cts.notify.base import LogNotifier
from cts.strategy.base import SignalSource
from tests.mocks.exchange import MockExchangeClient


class ScriptedSource(SignalSource):
    """按顺序返回预设信号，元素为异常时抛出"""

    NAME = "scripted"

    def __init__(self, *signals):
        self.signals = list(signals)

    @classmethod
    def from_config(cls, exchange, config):
        return cls()

    async def signal(self) -> Signal:
        item = self.signals.pop(0) if self.signals else Signal.NONE
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def exchange():
    exchange = MockExchangeClient()
    exchange.set_balance("usdt", "trade", 500.0)
    return exchange


@pytest.fixture
def notifier():
    return LogNotifier()


def _agent(exchange, source, notifier=None, report_interval=0.0) -> TradingAgent:
    engine = ExecutionEngine(exchange, notifier, settle_wait=0)
    return TradingAgent(
        engine,
        source,
        "btc_usdt",
        notifier=notifier,
        poll_interval=0.01,
        report_interval=report_interval,
    )


class TestRunOnce:
    """单个周期测试"""

    @pytest.mark.asyncio
    async def test_trade_counted(self, exchange):
        agent = _agent(exchange, ScriptedSource(Signal.RISE))

        report = await agent.run_once()

        assert report.traded
        assert agent.metrics.trades_executed == 1
        assert agent.metrics.total_cycles == 1

    @pytest.mark.asyncio
    async def test_strategy_error_logged_not_raised(self, exchange):
        agent = _agent(exchange, ScriptedSource(StrategyError("行情超时")))

        assert await agent.run_once() is None
        assert agent.metrics.errors == 1
        assert agent.metrics.last_error == "行情超时"
        assert exchange.calls == []

    @pytest.mark.asyncio
    async def test_execution_error_logged_not_raised(self, exchange):
        exchange.set_fail_on("place_market_order")
        agent = _agent(exchange, ScriptedSource(Signal.RISE))

        assert await agent.run_once() is None
        assert agent.metrics.errors == 1

    @pytest.mark.asyncio
    async def test_none_signal_skipped(self, exchange):
        agent = _agent(exchange, ScriptedSource(Signal.NONE))

        await agent.run_once()

        assert agent.metrics.skipped == 1
        assert exchange.calls == []

    def test_invalid_symbol(self, exchange):
        engine = ExecutionEngine(exchange)
        with pytest.raises(SymbolValidationError):
            TradingAgent(engine, ScriptedSource(), "btcusdt")


class TestHealthReport:
    """健康报告测试"""

    @pytest.mark.asyncio
    async def test_report_content(self, exchange):
        exchange.set_balance("btc", "loan", -0.5)
        agent = _agent(exchange, ScriptedSource())

        text = await agent.health_report()

        assert "类型：report" in text
        assert "品种：btc_usdt" in text
        assert "价格：50000.0" in text
        assert "btc：可用 0.0000，借款 -0.5000" in text
        assert "usdt：可用 500.0000" in text

    @pytest.mark.asyncio
    async def test_report_interval(self, exchange, notifier):
        agent = _agent(exchange, ScriptedSource(), notifier=notifier, report_interval=3600)

        await agent.run_once()
        await agent.run_once()

        reports = [m for m in notifier.messages if "类型：report" in m]
        assert len(reports) == 1

    @pytest.mark.asyncio
    async def test_report_sent_when_cycles_fail(self, exchange, notifier):
        source = ScriptedSource(StrategyError("行情超时"), StrategyError("行情超时"))
        agent = _agent(exchange, source, notifier=notifier, report_interval=3600)

        assert await agent.run_once() is None
        assert await agent.run_once() is None

        reports = [m for m in notifier.messages if "类型：report" in m]
        assert len(reports) == 1
        assert agent.metrics.errors == 2

    @pytest.mark.asyncio
    async def test_report_disabled(self, exchange, notifier):
        agent = _agent(exchange, ScriptedSource(), notifier=notifier, report_interval=0)

        await agent.run_once()

        assert notifier.messages == []


class TestRunForever:
    """主循环测试"""

    @pytest.mark.asyncio
    async def test_max_cycles(self, exchange):
        agent = _agent(exchange, ScriptedSource(StrategyError("x"), Signal.RISE, Signal.RISE))

        await agent.run_forever(max_cycles=3)

        assert agent.metrics.total_cycles == 3
        assert agent.metrics.errors == 1
        assert not agent.is_running

    @pytest.mark.asyncio
    async def test_stop(self, exchange):
        source = ScriptedSource()
        agent = _agent(exchange, source)

        original = source.signal

        async def stop_after_first():
            agent.stop()
            return await original()

        source.signal = stop_after_first

        await agent.run_forever()

        assert agent.metrics.total_cycles == 1
