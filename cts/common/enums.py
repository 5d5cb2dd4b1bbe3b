"""
CTS 杠杆交易代理 - 枚举定义

信号、方向、仓位状态以及交易所侧状态值。
"""

from enum import Enum


class Signal(str, Enum):
    """交易信号（每个轮询周期不可变）"""
    NONE = "none"  # 不操作
    RISE = "rise"  # 现货买入
    FALL = "fall"  # 现货卖出
    BULL = "bull"  # 满杠杆做多
    BEAR = "bear"  # 满杠杆做空


class OrderSide(str, Enum):
    """订单方向"""
    BUY = "buy"
    SELL = "sell"


class PositionStatus(str, Enum):
    """仓位状态"""
    EMPTY = "empty"                  # 空仓
    FULL = "full"                    # 满仓
    INDETERMINATE = "indeterminate"  # 介于两者之间


class CarryBucket(str, Enum):
    """杠杆账户余额分桶（交易所字段值）"""
    TRADE = "trade"
    FROZEN = "frozen"
    TRANSFER_OUT_AVAILABLE = "transfer-out-available"
    LOAN_AVAILABLE = "loan-available"
    LOAN = "loan"
    INTEREST = "interest"


class BorrowState(str, Enum):
    """借贷订单状态"""
    CREATED = "created"    # 未放款
    ACCRUAL = "accrual"    # 已放款，计息中
    CLEARED = "cleared"    # 已还清
    INVALID = "invalid"    # 异常


class OrderState(str, Enum):
    """交易订单状态"""
    PRE_SUBMITTED = "pre-submitted"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    PARTIAL_FILLED = "partial-filled"
    PARTIAL_CANCELED = "partial-canceled"
    FILLED = "filled"
    CANCELED = "canceled"
    UNKNOWN = "unknown"


class ExecutionStep(str, Enum):
    """执行步骤（用于错误包装）"""
    CHECK_POSITION = "check_position"
    CANCEL_OPEN_ORDERS = "cancel_open_orders"
    BORROW = "borrow"
    SIZE_AND_TRADE = "size_and_trade"
    REPAY = "repay"


class ActionKind(str, Enum):
    """通知动作类型"""
    BORROW = "borrow"
    BUY = "buy"
    SELL = "sell"
    REPAY = "repay"
    REPORT = "report"
