"""执行引擎测试"""

import pytest

from cts.common.enums import ExecutionStep, OrderSide, PositionStatus, Signal
from cts.common.exceptions import (
    DataNotFoundError,
    NotifierError,
    RepayError,
    SignalValidationError,
    StepError,
    SymbolValidationError,
    VenueError,
)
from cts.core.execution.engine import ExecutionEngine, resolve_command
from cts.notify.base import LogNotifier, Notifier
from tests.mocks.exchange import MockExchangeClient


class FailingNotifier(Notifier):
    """每次推送都失败"""

    def __init__(self):
        self.attempts = 0

    async def push(self, text: str) -> None:
        self.attempts += 1
        raise NotifierError("推送失败")


@pytest.fixture
def exchange():
    return MockExchangeClient(price=50000.0)


@pytest.fixture
def notifier():
    return LogNotifier()


@pytest.fixture
def engine(exchange, notifier):
    return ExecutionEngine(exchange, notifier, settle_wait=0)


class TestResolveCommand:
    """信号映射测试"""

    def test_mapping(self):
        assert resolve_command(Signal.RISE) == (OrderSide.BUY, False)
        assert resolve_command(Signal.FALL) == (OrderSide.SELL, False)
        assert resolve_command(Signal.BULL) == (OrderSide.BUY, True)
        assert resolve_command(Signal.BEAR) == (OrderSide.SELL, True)
        assert resolve_command("none") is None

    def test_unknown(self):
        with pytest.raises(SignalValidationError):
            resolve_command("moon")


class TestValidation:
    """入参校验测试"""

    @pytest.mark.asyncio
    async def test_none_signal_makes_no_calls(self, engine, exchange):
        report = await engine.execute(Signal.NONE, "btc_usdt")

        assert exchange.calls == []
        assert not report.traded
        assert report.skipped_reason == "no signal"

    @pytest.mark.asyncio
    async def test_unknown_signal(self, engine, exchange):
        with pytest.raises(SignalValidationError):
            await engine.execute("sideways", "btc_usdt")
        assert exchange.calls == []

    @pytest.mark.asyncio
    async def test_invalid_symbol(self, engine, exchange):
        with pytest.raises(SymbolValidationError):
            await engine.execute(Signal.RISE, "btcusdt")
        assert exchange.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_symbol(self, engine, exchange):
        with pytest.raises(StepError) as exc_info:
            await engine.execute(Signal.RISE, "abc_usdt")

        assert exc_info.value.step == ExecutionStep.CHECK_POSITION.value
        assert isinstance(exc_info.value.__cause__, DataNotFoundError)


class TestSpotExecution:
    """现货信号测试"""

    @pytest.mark.asyncio
    async def test_fall_sells_everything(self, engine, exchange, notifier):
        exchange.set_balance("btc", "trade", 0.02)
        exchange.set_balance("usdt", "trade", 500.0)

        report = await engine.execute(Signal.FALL, "btc_usdt")

        assert report.position == PositionStatus.INDETERMINATE
        assert exchange.called("place_market_order") == [("btc_usdt", OrderSide.SELL, 0.01996)]
        assert exchange.called("borrow") == []
        assert exchange.called("repay") == []
        assert report.order_id == "order_1"
        assert report.order_detail.state == "filled"
        assert len(notifier.messages) == 1
        assert "类型：sell" in notifier.messages[0]

    @pytest.mark.asyncio
    async def test_rise_when_full_is_skipped(self, engine, exchange):
        exchange.set_balance("usdt", "trade", 5.0)
        exchange.set_balance("btc", "trade", 1.0)

        report = await engine.execute(Signal.RISE, "btc_usdt")

        assert report.position == PositionStatus.FULL
        assert report.skipped_reason
        assert exchange.called("get_open_orders") == []
        assert exchange.called("place_market_order") == []

    @pytest.mark.asyncio
    async def test_fall_when_empty_is_skipped(self, engine, exchange):
        exchange.set_balance("usdt", "trade", 500.0)
        exchange.set_balance("btc", "trade", 0.0001)

        report = await engine.execute(Signal.FALL, "btc_usdt")

        assert report.position == PositionStatus.EMPTY
        assert not report.traded
        assert exchange.called("cancel_all_orders") == []

    @pytest.mark.asyncio
    async def test_rise_buys_with_quote(self, engine, exchange):
        exchange.set_balance("usdt", "trade", 500.0)

        report = await engine.execute(Signal.RISE, "btc_usdt")

        assert report.plan.side == OrderSide.BUY
        assert report.plan.currency == "usdt"
        side, amount = exchange.called("place_market_order")[0][1:]
        assert side == OrderSide.BUY
        assert amount == pytest.approx(500.0 / 1.002, abs=1e-8)

    @pytest.mark.asyncio
    async def test_open_orders_cancelled_first(self, engine, exchange):
        exchange.set_balance("usdt", "trade", 500.0)
        exchange.add_open_order("1")

        await engine.execute(Signal.RISE, "btc_usdt")

        methods = [name for name, _ in exchange.calls]
        assert methods.index("cancel_all_orders") < methods.index("place_market_order")

    @pytest.mark.asyncio
    async def test_no_cancel_without_open_orders(self, engine, exchange):
        exchange.set_balance("usdt", "trade", 500.0)

        await engine.execute(Signal.RISE, "btc_usdt")

        assert exchange.called("get_open_orders")
        assert exchange.called("cancel_all_orders") == []

    @pytest.mark.asyncio
    async def test_below_minimum_skipped(self, exchange):
        engine = ExecutionEngine(exchange, settle_wait=0, dust_threshold=1.0)
        exchange.set_balance("usdt", "trade", 500.0)
        exchange.set_balance("btc", "trade", 0.00005)

        report = await engine.execute(Signal.FALL, "btc_usdt")

        assert report.position == PositionStatus.INDETERMINATE
        assert report.skipped_reason == "amount below venue minimum"
        assert exchange.called("place_market_order") == []


class TestMarginExecution:
    """杠杆信号测试"""

    @pytest.mark.asyncio
    async def test_bull_borrows_quote_and_repays_base(self, engine, exchange, notifier):
        exchange.set_balance("usdt", "loan-available", 10.0)
        exchange.add_borrow_order("btc_loan", "btc", 0.5, interest_amount=0.25)

        report = await engine.execute(Signal.BULL, "btc_usdt")

        assert report.margin
        assert report.position is None
        assert exchange.called("borrow") == [("btc_usdt", "usdt", 10.0)]
        assert exchange.called("place_market_order")[0][1] == OrderSide.BUY
        assert exchange.called("repay") == [("btc_loan", 0.75)]
        assert [r.order_id for r in report.repays] == ["btc_loan"]
        kinds = [m.split("\n")[1] for m in notifier.messages]
        assert kinds == ["类型：borrow", "类型：buy", "类型：repay"]

    @pytest.mark.asyncio
    async def test_bear_sells_and_repays_quote(self, engine, exchange):
        exchange.set_balance("btc", "trade", 0.02)
        exchange.add_borrow_order("usdt_loan", "usdt", 100.0, interest_amount=0.5)
        exchange.add_borrow_order("btc_loan", "btc", 0.01)

        report = await engine.execute(Signal.BEAR, "btc_usdt")

        assert exchange.called("place_market_order") == [("btc_usdt", OrderSide.SELL, 0.01996)]
        assert exchange.called("repay") == [("usdt_loan", 100.5)]
        assert report.repays[0].currency == "usdt"

    @pytest.mark.asyncio
    async def test_margin_skips_position_check(self, engine, exchange):
        exchange.set_balance("usdt", "trade", 5.0)
        exchange.set_balance("btc", "trade", 1.0)

        await engine.execute(Signal.BULL, "btc_usdt")

        assert exchange.called("get_ticker") == []

    @pytest.mark.asyncio
    async def test_repay_failures_aggregated(self, engine, exchange, notifier):
        exchange.set_balance("btc", "trade", 0.02)
        exchange.add_borrow_order("101", "usdt", 50.0)
        exchange.add_borrow_order("102", "usdt", 60.0)
        exchange.set_repay_failure("101")

        with pytest.raises(StepError) as exc_info:
            await engine.execute(Signal.BEAR, "btc_usdt")

        err = exc_info.value
        assert err.step == ExecutionStep.REPAY.value
        assert isinstance(err.cause, RepayError)
        assert list(err.cause.failures) == ["101"]
        assert "(ID: 101)" in str(err.cause)
        assert [args[0] for args in exchange.called("repay")] == ["101", "102"]
        assert sum("类型：repay" in m for m in notifier.messages) == 1

    @pytest.mark.asyncio
    async def test_borrow_failure_aborts(self, engine, exchange):
        exchange.set_balance("usdt", "loan-available", 10.0)
        exchange.set_fail_on("borrow")

        with pytest.raises(StepError) as exc_info:
            await engine.execute(Signal.BULL, "btc_usdt")

        assert exc_info.value.step == ExecutionStep.BORROW.value
        assert isinstance(exc_info.value.cause, VenueError)
        assert exchange.called("place_market_order") == []


class TestStepFailures:
    """步骤失败测试"""

    @pytest.mark.asyncio
    async def test_cancel_failure_aborts(self, engine, exchange):
        exchange.set_balance("usdt", "trade", 500.0)
        exchange.set_fail_on("get_open_orders")

        with pytest.raises(StepError) as exc_info:
            await engine.execute(Signal.RISE, "btc_usdt")

        assert exc_info.value.step == ExecutionStep.CANCEL_OPEN_ORDERS.value
        assert exchange.called("place_market_order") == []

    @pytest.mark.asyncio
    async def test_order_failure(self, engine, exchange):
        exchange.set_balance("usdt", "trade", 500.0)
        exchange.set_fail_on("place_market_order")

        with pytest.raises(StepError) as exc_info:
            await engine.execute(Signal.RISE, "btc_usdt")

        assert exc_info.value.step == ExecutionStep.SIZE_AND_TRADE.value

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_abort(self, exchange):
        notifier = FailingNotifier()
        engine = ExecutionEngine(exchange, notifier, settle_wait=0)
        exchange.set_balance("usdt", "trade", 500.0)

        report = await engine.execute(Signal.RISE, "btc_usdt")

        assert report.traded
        assert notifier.attempts == 1

    @pytest.mark.asyncio
    async def test_symbol_metadata_cached(self, engine, exchange):
        exchange.set_balance("usdt", "trade", 5.0)

        await engine.execute(Signal.RISE, "btc_usdt")
        await engine.execute(Signal.RISE, "btc_usdt")

        assert len(exchange.called("get_symbol")) == 1
        assert len(exchange.called("get_account_carry")) == 2
