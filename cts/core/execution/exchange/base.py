"""
CTS 杠杆交易代理 - 交易所基类

定义执行引擎依赖的交易所客户端接口。
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from cts.common.enums import BorrowState, OrderSide, OrderState
from cts.common.models import (
    BalanceEntry,
    BorrowOrder,
    OpenOrder,
    OrderDetail,
    Symbol,
    SymbolLimits,
    Ticker,
)


class ExchangeClient(ABC):
    """
    交易所客户端抽象基类

    所有交易所实现必须继承此类。交易对参数统一使用 btc_usdt 形式，
    由实现自行转换为交易所格式。
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """交易所名称"""
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """是否已连接"""
        pass

    @abstractmethod
    async def connect(self) -> None:
        """建立连接"""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """断开连接"""
        pass

    # ========================================
    # 行情与元数据
    # ========================================

    @abstractmethod
    async def get_ticker(self, symbol: str) -> Ticker:
        """获取行情"""
        pass

    @abstractmethod
    async def get_symbol(self, symbol: str) -> Symbol:
        """
        获取交易对元数据

        Raises:
            DataNotFoundError: 交易所不支持该交易对
        """
        pass

    async def get_symbol_limits(self, symbol: str) -> SymbolLimits:
        """获取交易对下单限制"""
        return (await self.get_symbol(symbol)).limits

    # ========================================
    # 杠杆账户
    # ========================================

    @abstractmethod
    async def get_account_carry(self, symbol: str) -> list[BalanceEntry]:
        """获取交易对杠杆账户的全部余额分桶"""
        pass

    @abstractmethod
    async def get_borrow_orders(
        self, symbol: str, state: BorrowState | None = None
    ) -> list[BorrowOrder]:
        """获取借贷订单"""
        pass

    @abstractmethod
    async def borrow(self, symbol: str, currency: str, amount: float) -> str:
        """
        申请借款

        Returns:
            借贷订单 ID
        """
        pass

    @abstractmethod
    async def repay(self, borrow_order_id: str, amount: float) -> None:
        """归还借贷订单"""
        pass

    # ========================================
    # 订单
    # ========================================

    @abstractmethod
    async def get_open_orders(
        self, symbol: str, states: Sequence[OrderState]
    ) -> list[OpenOrder]:
        """获取指定状态的未完成订单"""
        pass

    @abstractmethod
    async def cancel_all_orders(self, symbol: str) -> None:
        """撤销交易对的全部未完成订单"""
        pass

    @abstractmethod
    async def place_market_order(
        self, symbol: str, side: OrderSide, amount: float
    ) -> str:
        """
        下市价单

        Args:
            symbol: 交易对
            side: 方向
            amount: 买入为计价币种金额，卖出为基础币种数量

        Returns:
            订单 ID
        """
        pass

    @abstractmethod
    async def get_order_detail(self, order_id: str) -> OrderDetail:
        """获取订单成交详情"""
        pass
