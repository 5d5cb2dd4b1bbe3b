"""
CTS 杠杆交易代理 - 调度器

每个轮询周期：取信号 -> 执行 -> 必要时推送健康报告。
单个周期内的任何错误只记录日志，不影响后续周期。
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta

from cts.common.enums import ActionKind
from cts.common.logging import get_logger
from cts.common.models import ExecutionReport
from cts.common.utils import split_symbol, utc_now
from cts.core.execution.carry import compute_carry
from cts.core.execution.engine import ExecutionEngine
from cts.notify.base import Notifier
from cts.strategy.base import SignalSource

logger = get_logger(__name__)


@dataclass
class AgentMetrics:
    """循环指标"""
    total_cycles: int = 0
    trades_executed: int = 0
    skipped: int = 0
    errors: int = 0
    last_error: str | None = None
    last_report_at: datetime | None = None


class TradingAgent:
    """
    交易代理

    串联信号源、执行引擎和通知渠道。周期严格串行：
    上一个周期结束后才开始下一个周期。
    """

    def __init__(
        self,
        engine: ExecutionEngine,
        source: SignalSource,
        symbol: str,
        notifier: Notifier | None = None,
        poll_interval: float = 1.0,
        report_interval: float = 3600.0,
    ):
        split_symbol(symbol)  # 非法交易对在启动时失败

        self.engine = engine
        self.source = source
        self.symbol = symbol.lower()
        self.notifier = notifier
        self.poll_interval = poll_interval
        self.report_interval = report_interval

        self._running = False
        self._metrics = AgentMetrics()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def metrics(self) -> AgentMetrics:
        return self._metrics

    # ========================================
    # 单个周期
    # ========================================

    async def run_once(self) -> ExecutionReport | None:
        """
        执行一个周期

        Returns:
            执行结果；取信号或执行失败时返回 None
        """
        self._metrics.total_cycles += 1
        report: ExecutionReport | None

        try:
            signal = await self.source.signal()
            report = await self.engine.execute(signal, self.symbol)
        except Exception as e:
            self._metrics.errors += 1
            self._metrics.last_error = str(e)
            logger.error(
                f"周期执行失败: {e}",
                extra={"symbol": self.symbol, "error_type": type(e).__name__},
            )
            report = None
        else:
            if report.traded:
                self._metrics.trades_executed += 1
            elif report.skipped_reason:
                self._metrics.skipped += 1

        # 失败周期同样按间隔推送健康报告
        await self._maybe_report()
        return report

    # ========================================
    # 健康报告
    # ========================================

    async def health_report(self) -> str:
        """当前基础 / 计价币种的余额、负债和最新价格"""
        base, quote = split_symbol(self.symbol)
        exchange = self.engine.exchange

        ticker = await exchange.get_ticker(self.symbol)
        entries = await exchange.get_account_carry(self.symbol)

        lines = [
            f"{utc_now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"类型：{ActionKind.REPORT.value}",
            f"品种：{self.symbol}",
            f"价格：{ticker.last}",
        ]
        for currency in (base, quote):
            carry = compute_carry(entries, currency)
            lines.append(
                f"{currency}：可用 {carry.trade:.4f}，借款 {carry.loan:.4f}，利息 {carry.interest:.8f}"
            )
        return "\n".join(lines)

    async def _maybe_report(self) -> None:
        if self.notifier is None or self.report_interval <= 0:
            return

        now = utc_now()
        last = self._metrics.last_report_at
        if last is not None and now - last < timedelta(seconds=self.report_interval):
            return

        self._metrics.last_report_at = now
        try:
            await self.notifier.push(await self.health_report())
        except Exception as e:
            logger.warning(f"健康报告推送失败: {e}", extra={"symbol": self.symbol})

    # ========================================
    # 主循环
    # ========================================

    async def run_forever(self, max_cycles: int | None = None) -> None:
        """
        主循环

        Args:
            max_cycles: 最多执行的周期数，None 表示直到 stop()
        """
        self._running = True
        logger.info(
            f"交易代理已启动: {self.symbol}, 策略 {self.source.name}",
            extra={"symbol": self.symbol, "strategy": self.source.name, "interval": self.poll_interval},
        )

        cycles = 0
        while self._running:
            await self.run_once()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            await asyncio.sleep(self.poll_interval)

        self._running = False
        logger.info("交易代理已停止", extra={"cycles": cycles})

    def stop(self) -> None:
        """在当前周期结束后停止"""
        self._running = False
