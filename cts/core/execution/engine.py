"""
CTS 杠杆交易代理 - 执行引擎

把离散信号转换为交易所侧的账户操作序列：
撤单 -> (借款) -> 下单 -> (还款)

每个轮询周期调用一次 execute()，余额、订单全部当场查询，不跨周期缓存。
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from cts.common.enums import (
    ActionKind,
    ExecutionStep,
    OrderSide,
    Signal,
)
from cts.common.exceptions import (
    RepayError,
    SignalValidationError,
    StepError,
    TradingSystemError,
)
from cts.common.logging import get_logger
from cts.common.models import (
    ExecutionReport,
    Notification,
    RepayRecord,
    Symbol,
    TradePlan,
)
from cts.common.utils import floor_amount, split_symbol
from cts.notify.base import Notifier

from .carry import compute_carry
from .constants import ExecutionConstants
from .exchange import ExchangeClient
from .leverage import LeverageController
from .planner import plan_trade
from .position import classify_position, is_redundant

logger = get_logger(__name__)

T = TypeVar("T")

# 信号 -> (方向, 是否使用杠杆)
SIGNAL_COMMANDS: dict[Signal, tuple[OrderSide, bool]] = {
    Signal.RISE: (OrderSide.BUY, False),
    Signal.FALL: (OrderSide.SELL, False),
    Signal.BULL: (OrderSide.BUY, True),
    Signal.BEAR: (OrderSide.SELL, True),
}


def resolve_command(signal: Signal | str) -> tuple[OrderSide, bool] | None:
    """
    信号映射为下单指令

    Returns:
        (方向, 是否杠杆)；Signal.NONE 返回 None

    Raises:
        SignalValidationError: 未知信号
    """
    try:
        signal = Signal(signal)
    except ValueError as e:
        raise SignalValidationError(f"unknown signal: {signal}", {"signal": signal}) from e

    if signal == Signal.NONE:
        return None
    return SIGNAL_COMMANDS[signal]


class ExecutionEngine:
    """
    执行引擎

    状态流转：
    Idle -> CheckPosition(仅现货) -> CancelOpenOrders -> BorrowIfMargin
         -> SizeAndTrade -> RepayIfMargin -> Done

    任一步骤失败即中止后续步骤（还款步骤除外，其失败汇总后统一上抛），
    已完成的操作不回滚，由下一个周期基于最新状态重新判断。
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        notifier: Notifier | None = None,
        dust_threshold: float = ExecutionConstants.DUST_THRESHOLD,
        fee_rate: float = ExecutionConstants.TAKER_FEE_RATE,
        settle_wait: float = ExecutionConstants.SETTLE_WAIT,
        borrow_ratio: float = 1.0,
        max_borrow_rounds: int = 1,
        borrow_precision: int = ExecutionConstants.precision.borrow,
        repay_precision: int = ExecutionConstants.precision.repay,
    ):
        self.exchange = exchange
        self.notifier = notifier
        self.dust_threshold = dust_threshold
        self.fee_rate = fee_rate
        self.settle_wait = settle_wait
        self.repay_precision = repay_precision

        self.leverage = LeverageController(
            exchange,
            borrow_ratio=borrow_ratio,
            max_rounds=max_borrow_rounds,
            precision=borrow_precision,
            notify=self._notify,
        )

        # 交易对元数据运行期间只读，按名称缓存
        self._symbols: dict[str, Symbol] = {}

    @classmethod
    def from_settings(cls, exchange: ExchangeClient, settings, notifier: Notifier | None = None) -> "ExecutionEngine":
        """由 Settings 构建"""
        trading = settings.trading
        return cls(
            exchange,
            notifier=notifier,
            dust_threshold=trading.dust_threshold,
            fee_rate=trading.taker_fee_rate,
            settle_wait=trading.settle_wait,
            borrow_ratio=trading.borrow_ratio,
            max_borrow_rounds=trading.max_borrow_rounds,
            borrow_precision=trading.borrow_precision,
            repay_precision=trading.repay_precision,
        )

    # ========================================
    # 入口
    # ========================================

    async def execute(self, signal: Signal | str, symbol: str) -> ExecutionReport:
        """
        执行一次信号

        Args:
            signal: 交易信号
            symbol: 交易对，如 btc_usdt

        Returns:
            执行结果

        Raises:
            ValidationError: 信号或交易对非法（未发起任何交易所调用）
            StepError: 某一步骤失败，step 为失败步骤名
        """
        command = resolve_command(signal)
        signal = Signal(signal)

        if command is None:
            logger.debug("无信号，不操作")
            return ExecutionReport(signal=signal, symbol=symbol or "", skipped_reason="no signal")

        base, quote = split_symbol(symbol)
        side, margin = command
        report = ExecutionReport(signal=signal, symbol=f"{base}_{quote}", side=side, margin=margin)

        sym = await self._run_step(ExecutionStep.CHECK_POSITION, self._load_symbol(report.symbol))

        # 买入时付出计价币种、得到基础币种，卖出时相反
        give_up = sym.quote if side == OrderSide.BUY else sym.base
        receive = sym.base if side == OrderSide.BUY else sym.quote

        if not margin:
            status = await self._run_step(ExecutionStep.CHECK_POSITION, self._check_position(sym))
            report.position = status
            if is_redundant(side, status):
                report.skipped_reason = f"position already {status.value}"
                logger.info(
                    f"仓位已是 {status.value}，无需 {side.value}: {sym.name}",
                    extra={"symbol": sym.name, "signal": signal.value},
                )
                return report

        await self._run_step(ExecutionStep.CANCEL_OPEN_ORDERS, self._cancel_open_orders(sym))

        if margin:
            carry, borrows = await self._run_step(
                ExecutionStep.BORROW,
                self.leverage.ensure_leverage(sym, give_up, margin=True),
            )
            report.borrows = borrows
        else:
            carry = await self._run_step(
                ExecutionStep.SIZE_AND_TRADE,
                self.leverage.query_carry(sym, give_up),
            )

        plan = plan_trade(side, carry, sym, self.fee_rate)
        if plan is None:
            report.skipped_reason = "amount below venue minimum"
            return report

        report.plan = plan
        await self._run_step(ExecutionStep.SIZE_AND_TRADE, self._trade(sym, plan, report))

        if margin:
            report.repays = await self._run_step(ExecutionStep.REPAY, self._repay(sym, receive))

        logger.info(
            f"执行完成: {sym.name} {signal.value}, 订单 {report.order_id}",
            extra={"symbol": sym.name, "signal": signal.value, "order_id": report.order_id},
        )
        return report

    # ========================================
    # 步骤
    # ========================================

    async def _run_step(self, step: ExecutionStep, coro: Awaitable[T]) -> T:
        """执行步骤，失败时包装步骤名"""
        try:
            return await coro
        except StepError:
            raise
        except Exception as e:
            logger.error(
                f"步骤失败: {step.value}, {e}",
                extra={"step": step.value, "error_type": type(e).__name__},
            )
            raise StepError(step.value, e) from e

    async def _load_symbol(self, name: str) -> Symbol:
        if name not in self._symbols:
            self._symbols[name] = await self.exchange.get_symbol(name)
        return self._symbols[name]

    async def _check_position(self, sym: Symbol):
        ticker = await self.exchange.get_ticker(sym.name)
        entries = await self.exchange.get_account_carry(sym.name)
        status = classify_position(
            compute_carry(entries, sym.quote),
            compute_carry(entries, sym.base),
            ticker.last,
            self.dust_threshold,
        )
        logger.debug(f"仓位状态: {sym.name} {status.value}")
        return status

    async def _cancel_open_orders(self, sym: Symbol) -> int:
        orders = await self.exchange.get_open_orders(sym.name, ExecutionConstants.OPEN_ORDER_STATES)
        if not orders:
            return 0
        await self.exchange.cancel_all_orders(sym.name)
        logger.info(
            f"撤销未完成订单: {sym.name} {len(orders)} 个",
            extra={"symbol": sym.name, "count": len(orders)},
        )
        return len(orders)

    async def _trade(self, sym: Symbol, plan: TradePlan, report: ExecutionReport) -> None:
        order_id = await self.exchange.place_market_order(sym.name, plan.side, plan.amount)
        report.order_id = order_id
        logger.info(
            f"下单成功: {sym.name} {plan.side.value} {plan.amount} {plan.currency}, 订单 {order_id}",
            extra={"symbol": sym.name, "side": plan.side.value, "amount": plan.amount},
        )

        await self._notify(Notification(
            kind=ActionKind(plan.side.value),
            symbol=sym.name,
            amount=plan.amount,
            currency=plan.currency,
        ))

        if self.settle_wait > 0:
            await asyncio.sleep(self.settle_wait)
        detail = await self.exchange.get_order_detail(order_id)
        report.order_detail = detail
        logger.info(
            f"订单成交: {order_id} {detail.state}, 成交量 {detail.filled_amount}, "
            f"均价 {detail.average_price:.8f}, 手续费 {detail.filled_fees}",
            extra={"symbol": sym.name, "order_id": order_id, "state": detail.state},
        )

    async def _repay(self, sym: Symbol, currency: str) -> list[RepayRecord]:
        """
        归还该币种全部计息中的借贷订单

        每笔独立还款，单笔失败不影响其余订单，失败项汇总为 RepayError。
        """
        orders = await self.exchange.get_borrow_orders(sym.name, ExecutionConstants.REPAYABLE_STATE)
        repaid: list[RepayRecord] = []
        failures: dict[str, str] = {}

        for order in orders:
            if order.currency.lower() != currency.lower() or order.state != ExecutionConstants.REPAYABLE_STATE.value:
                continue

            amount = floor_amount(order.outstanding, self.repay_precision)
            try:
                await self.exchange.repay(order.id, amount)
            except TradingSystemError as e:
                logger.warning(
                    f"还款失败: 订单 {order.id}, {e}",
                    extra={"symbol": sym.name, "borrow_order_id": order.id},
                )
                failures[order.id] = str(e)
                continue

            repaid.append(RepayRecord(order_id=order.id, currency=currency, amount=amount))
            await self._notify(Notification(
                kind=ActionKind.REPAY,
                symbol=sym.name,
                amount=amount,
                currency=currency,
            ))

        if failures:
            raise RepayError(failures)
        return repaid

    async def _notify(self, event: Notification) -> None:
        """推送通知，失败只记录日志"""
        if self.notifier is None:
            return
        try:
            await self.notifier.push(event.text())
        except Exception as e:
            logger.warning(
                f"通知推送失败: {e}",
                extra={"kind": event.kind.value, "symbol": event.symbol},
            )
