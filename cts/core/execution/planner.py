"""
CTS 杠杆交易代理 - 下单数量规划

以卖出币种的全部可用余额为起点，扣除手续费后按交易所限制截断。
"""

from cts.common.enums import OrderSide
from cts.common.logging import get_logger
from cts.common.models import Carry, Symbol, TradePlan
from cts.common.utils import floor_amount

from .constants import ExecutionConstants

logger = get_logger(__name__)


def plan_trade(
    side: OrderSide,
    carry: Carry,
    symbol: Symbol,
    fee_rate: float = ExecutionConstants.TAKER_FEE_RATE,
) -> TradePlan | None:
    """
    计算下单数量

    买入时 carry 为计价币种（市价买单以金额计），卖出时为基础币种。

    Args:
        side: 下单方向
        carry: 被卖出币种的余额
        symbol: 交易对（精度与限制）
        fee_rate: 吃单手续费率

    Returns:
        下单计划；低于最小下单量时返回 None（跳过，不视为错误）
    """
    if side == OrderSide.BUY:
        lower, upper = symbol.limits.buy_min, symbol.limits.buy_max
        precision = symbol.value_precision
    else:
        lower, upper = symbol.limits.sell_min, symbol.limits.sell_max
        precision = symbol.amount_precision

    amount = floor_amount(carry.trade / (1 + fee_rate), precision)

    if amount <= 0 or amount < lower:
        logger.info(
            f"下单数量不足最小限制，跳过: {symbol.name} {side.value} {amount} < {lower}",
            extra={"symbol": symbol.name, "side": side.value, "amount": amount, "min": lower},
        )
        return None

    clamped = amount > upper
    if clamped:
        logger.info(
            f"下单数量超过最大限制，截断: {amount} -> {upper}",
            extra={"symbol": symbol.name, "side": side.value},
        )
        amount = floor_amount(upper, precision)

    return TradePlan(side=side, currency=carry.currency, amount=amount, clamped=clamped)
