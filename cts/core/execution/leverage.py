"""
CTS 杠杆交易代理 - 杠杆控制器

保证金模式下，在规划下单数量之前借满被卖出币种的可借额度。
"""

from collections.abc import Awaitable, Callable

from cts.common.enums import ActionKind
from cts.common.logging import get_logger
from cts.common.models import BorrowRecord, Carry, Notification, Symbol
from cts.common.utils import floor_amount

from .carry import compute_carry
from .constants import ExecutionConstants
from .exchange import ExchangeClient

logger = get_logger(__name__)

NotifyCallback = Callable[[Notification], Awaitable[None]]


class LeverageController:
    """
    杠杆控制器

    循环上限由两个条件约束：
    - 该币种已有计息中的借贷订单时不再借款
    - 单次调用最多借款 max_rounds 次
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        borrow_ratio: float = 1.0,
        max_rounds: int = 1,
        precision: int = ExecutionConstants.precision.borrow,
        notify: NotifyCallback | None = None,
    ):
        self.exchange = exchange
        self.borrow_ratio = borrow_ratio
        self.max_rounds = max_rounds
        self.precision = precision
        self._notify = notify

    async def query_carry(self, symbol: Symbol, currency: str) -> Carry:
        """重新查询币种余额"""
        entries = await self.exchange.get_account_carry(symbol.name)
        return compute_carry(entries, currency)

    async def has_accruing_order(self, symbol: Symbol, currency: str) -> bool:
        """该币种是否已有计息中的借贷订单"""
        orders = await self.exchange.get_borrow_orders(symbol.name, ExecutionConstants.REPAYABLE_STATE)
        return any(
            o.currency.lower() == currency.lower() and o.state == ExecutionConstants.REPAYABLE_STATE.value
            for o in orders
        )

    async def ensure_leverage(
        self,
        symbol: Symbol,
        currency: str,
        margin: bool,
    ) -> tuple[Carry, list[BorrowRecord]]:
        """
        借满可借额度

        Args:
            symbol: 交易对
            currency: 被卖出的币种（买入时为计价币种，卖出时为基础币种）
            margin: 是否使用杠杆

        Returns:
            (借款后的最新余额, 本次成功的借款记录)

        Raises:
            借款失败直接上抛，已借到的资金不回滚
        """
        carry = await self.query_carry(symbol, currency)
        borrows: list[BorrowRecord] = []

        while margin and len(borrows) < self.max_rounds and carry.loan_available > 0:
            amount = floor_amount(carry.loan_available * self.borrow_ratio, self.precision)
            if amount <= 0:
                logger.info(
                    f"可借额度低于精度，不借款: {carry.loan_available} {currency}",
                    extra={"symbol": symbol.name, "currency": currency},
                )
                break

            if await self.has_accruing_order(symbol, currency):
                logger.info(
                    f"已有计息中的借贷订单，不再借款: {symbol.name} {currency}",
                    extra={"symbol": symbol.name, "currency": currency},
                )
                break

            order_id = await self.exchange.borrow(symbol.name, currency, amount)
            borrows.append(BorrowRecord(order_id=order_id, currency=currency, amount=amount))
            logger.info(
                f"借款成功: {symbol.name} {amount} {currency}, 订单 {order_id}",
                extra={"symbol": symbol.name, "currency": currency, "amount": amount},
            )

            if self._notify is not None:
                await self._notify(Notification(
                    kind=ActionKind.BORROW,
                    symbol=symbol.name,
                    amount=amount,
                    currency=currency,
                ))

            carry = await self.query_carry(symbol, currency)

        return carry, borrows
