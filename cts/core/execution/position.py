"""
CTS 杠杆交易代理 - 仓位判定

根据计价币种和目标币种的可用余额判断当前仓位状态。
余额每次成交后都会变化，因此每次决策都重新判定，不做缓存。
"""

from cts.common.enums import OrderSide, PositionStatus
from cts.common.models import Carry

from .constants import ExecutionConstants


def classify_position(
    quote: Carry,
    target: Carry,
    price: float,
    dust_threshold: float = ExecutionConstants.DUST_THRESHOLD,
) -> PositionStatus:
    """
    判定仓位状态

    Args:
        quote: 计价币种余额
        target: 目标（基础）币种余额
        price: 目标币种当前价格（以计价币种计）
        dust_threshold: 粉尘阈值（计价币种单位）

    Returns:
        计价币种不足阈值 -> FULL
        目标币种市值不足阈值 -> EMPTY
        其余 -> INDETERMINATE
    """
    if quote.trade < dust_threshold:
        return PositionStatus.FULL
    if target.trade * price < dust_threshold:
        return PositionStatus.EMPTY
    return PositionStatus.INDETERMINATE


def is_redundant(side: OrderSide, status: PositionStatus) -> bool:
    """满仓再买、空仓再卖视为冗余操作"""
    if side == OrderSide.BUY:
        return status == PositionStatus.FULL
    return status == PositionStatus.EMPTY
