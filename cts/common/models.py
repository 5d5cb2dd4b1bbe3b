"""
CTS 杠杆交易代理 - 数据模型

使用 Pydantic v2。交易所响应在边界处按模型严格校验，
字段缺失或类型错误会抛出校验异常，而不是静默置零。
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .enums import ActionKind, OrderSide, PositionStatus, Signal
from .utils import split_symbol, utc_now, venue_symbol


def _as_str(v: Any) -> Any:
    """交易所 ID 可能是整数，统一转为字符串"""
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(int(v))
    return v


# ============================================================
# 交易对
# ============================================================

class SymbolLimits(BaseModel):
    """
    交易对下单限制

    买入（市价）以计价币种金额计，卖出以基础币种数量计。
    """
    model_config = {"frozen": True}

    buy_min: float = Field(default=0.0, ge=0.0)
    buy_max: float = Field(default=float("inf"), gt=0.0)
    sell_min: float = Field(default=0.0, ge=0.0)
    sell_max: float = Field(default=float("inf"), gt=0.0)


class Symbol(BaseModel):
    """交易对及其交易所元数据（运行期间只读）"""
    model_config = {"frozen": True}

    name: str
    base: str
    quote: str
    price_precision: int = Field(default=8, ge=0, le=16)
    amount_precision: int = Field(default=8, ge=0, le=16)
    value_precision: int = Field(default=8, ge=0, le=16)
    limits: SymbolLimits = Field(default_factory=SymbolLimits)

    @classmethod
    def parse(cls, name: str, **metadata: Any) -> "Symbol":
        """由 btc_usdt 形式的名称构建交易对"""
        base, quote = split_symbol(name)
        return cls(name=f"{base}_{quote}", base=base, quote=quote, **metadata)

    @property
    def venue_name(self) -> str:
        return venue_symbol(self.name)


# ============================================================
# 行情与账户
# ============================================================

class Ticker(BaseModel):
    """行情快照"""
    model_config = {"frozen": True}

    symbol: str
    last: float = Field(ge=0.0)
    highest_bid: float = Field(default=0.0, ge=0.0)
    lowest_ask: float = Field(default=0.0, ge=0.0)
    percent_change: float = 0.0


class BalanceEntry(BaseModel):
    """杠杆账户中单个币种的单个余额分桶"""
    model_config = {"frozen": True}

    currency: str
    bucket_type: str = Field(validation_alias=AliasChoices("bucket_type", "type"))
    amount: float = Field(validation_alias=AliasChoices("amount", "balance"))


class Carry(BaseModel):
    """
    单个币种的余额分桶快照（每次决策重新计算，不跨周期缓存）

    loan / interest 按交易所原值保存，未还负债为负数。
    """
    model_config = {"frozen": True}

    currency: str
    trade: float = 0.0
    frozen: float = 0.0
    transfer_out_available: float = 0.0
    loan_available: float = 0.0
    loan: float = 0.0
    interest: float = 0.0


# ============================================================
# 订单
# ============================================================

class BorrowOrder(BaseModel):
    """借贷订单"""
    model_config = {"frozen": True}

    id: str
    currency: str
    state: str
    symbol: str = ""
    loan_amount: float = Field(validation_alias=AliasChoices("loan_amount", "loan-amount"))
    interest_amount: float = Field(
        default=0.0,
        validation_alias=AliasChoices("interest_amount", "interest-amount"),
    )
    loan_balance: float = Field(
        default=0.0,
        validation_alias=AliasChoices("loan_balance", "loan-balance"),
    )
    interest_balance: float = Field(
        default=0.0,
        validation_alias=AliasChoices("interest_balance", "interest-balance"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _as_str(v)

    @property
    def outstanding(self) -> float:
        """待还总额（本金 + 利息）"""
        return self.loan_amount + self.interest_amount


class OpenOrder(BaseModel):
    """未完成订单"""
    model_config = {"frozen": True}

    id: str
    state: str
    symbol: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _as_str(v)


class OrderDetail(BaseModel):
    """订单成交详情"""
    model_config = {"frozen": True}

    id: str
    state: str
    filled_amount: float = Field(
        default=0.0,
        validation_alias=AliasChoices("filled_amount", "field-amount", "filled-amount"),
    )
    filled_cash_amount: float = Field(
        default=0.0,
        validation_alias=AliasChoices("filled_cash_amount", "field-cash-amount", "filled-cash-amount"),
    )
    filled_fees: float = Field(
        default=0.0,
        validation_alias=AliasChoices("filled_fees", "field-fees", "filled-fees"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _as_str(v)

    @property
    def average_price(self) -> float:
        if self.filled_amount <= 0:
            return 0.0
        return self.filled_cash_amount / self.filled_amount


# ============================================================
# 执行层模型
# ============================================================

class TradePlan(BaseModel):
    """下单计划"""
    model_config = {"frozen": True}

    side: OrderSide
    currency: str = Field(description="被卖出的币种：买入时为计价币种，卖出时为基础币种")
    amount: float = Field(gt=0)
    clamped: bool = False


class BorrowRecord(BaseModel):
    """一次成功的借款"""
    model_config = {"frozen": True}

    order_id: str
    currency: str
    amount: float


class RepayRecord(BaseModel):
    """一次成功的还款"""
    model_config = {"frozen": True}

    order_id: str
    currency: str
    amount: float


class Notification(BaseModel):
    """推送给运维渠道的结构化事件"""
    model_config = {"frozen": True}

    kind: ActionKind
    symbol: str
    amount: float
    currency: str
    timestamp: datetime = Field(default_factory=utc_now)

    def text(self) -> str:
        return (
            f"{self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}"
            f"\n类型：{self.kind.value}"
            f"\n品种：{self.symbol}"
            f"\n数量：{self.amount:.4f} {self.currency}"
        )


class ExecutionReport(BaseModel):
    """一次 execute 调用的执行结果"""
    signal: Signal
    symbol: str
    side: OrderSide | None = None
    margin: bool = False
    position: PositionStatus | None = None
    borrows: list[BorrowRecord] = Field(default_factory=list)
    plan: TradePlan | None = None
    order_id: str | None = None
    order_detail: OrderDetail | None = None
    repays: list[RepayRecord] = Field(default_factory=list)
    skipped_reason: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def traded(self) -> bool:
        return self.order_id is not None
