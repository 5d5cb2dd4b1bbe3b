"""
CTS 杠杆交易代理 - 执行层常量

默认值与 TradingConfig 一致，配置缺省时使用。
"""

from dataclasses import dataclass

from cts.common.enums import BorrowState, OrderState


@dataclass(frozen=True)
class PrecisionConfig:
    """数量精度"""
    borrow: int = 3   # 借款数量小数位
    repay: int = 8    # 还款数量小数位


class ExecutionConstants:
    """执行层常量"""
    precision = PrecisionConfig()

    # 计价币种粉尘阈值
    DUST_THRESHOLD: float = 10.0

    # 吃单手续费率
    TAKER_FEE_RATE: float = 0.002

    # 下单后等待成交的秒数
    SETTLE_WAIT: float = 1.0

    # 需要撤销的未完成订单状态
    OPEN_ORDER_STATES: tuple[OrderState, ...] = (
        OrderState.PRE_SUBMITTED,
        OrderState.SUBMITTED,
        OrderState.PARTIAL_FILLED,
    )

    # 需要还款的借贷订单状态
    REPAYABLE_STATE: BorrowState = BorrowState.ACCRUAL
