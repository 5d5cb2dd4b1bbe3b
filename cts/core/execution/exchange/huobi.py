"""
CTS 杠杆交易代理 - Huobi 客户端

Huobi REST v1 杠杆账户接口：签名、信封解析和响应解码。
"""

import base64
import hashlib
import hmac
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote, urlencode, urlparse

import httpx
from pydantic import BaseModel, Field, StrictInt, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from cts.common.enums import BorrowState, OrderSide, OrderState
from cts.common.exceptions import (
    DataNotFoundError,
    DataValidationError,
    ExchangeConnectionError,
    ExchangeError,
    VenueError,
)
from cts.common.logging import get_logger
from cts.common.models import (
    BalanceEntry,
    BorrowOrder,
    OpenOrder,
    OrderDetail,
    Symbol,
    SymbolLimits,
    Ticker,
)
from cts.common.retry import retry_with_backoff
from cts.common.utils import format_amount, split_symbol, utc_now, venue_symbol

from .base import ExchangeClient

logger = get_logger(__name__)

# 下单 / 借还款数量统一按 8 位小数格式化，精度截断由执行层负责
AMOUNT_FORMAT_PRECISION = 8


class _SymbolEntry(BaseModel):
    """/v1/common/symbols 单个交易对，下单限制字段必须存在"""

    base_currency: str = Field(alias="base-currency", min_length=1)
    quote_currency: str = Field(alias="quote-currency", min_length=1)
    price_precision: int = Field(alias="price-precision")
    amount_precision: int = Field(alias="amount-precision")
    value_precision: int = Field(alias="value-precision")
    min_order_value: float = Field(alias="min-order-value")
    buy_max: float = Field(alias="buy-market-max-order-value")
    sell_min: float = Field(alias="sell-market-min-order-amt")
    sell_max: float = Field(alias="sell-market-max-order-amt")

    def to_symbol(self) -> Symbol:
        return Symbol.parse(
            f"{self.base_currency}_{self.quote_currency}",
            price_precision=self.price_precision,
            amount_precision=self.amount_precision,
            value_precision=self.value_precision,
            limits=SymbolLimits(
                buy_min=self.min_order_value,
                buy_max=self.buy_max,
                sell_min=self.sell_min,
                sell_max=self.sell_max,
            ),
        )


class _CreatedId(BaseModel):
    """下单 / 借款接口返回的订单 ID"""

    data: StrictInt | StrictStr

    @field_validator("data")
    @classmethod
    def not_blank(cls, v: int | str) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("empty order id")
        return v


def _decode(model: type[BaseModel], raw: Any, endpoint: str) -> Any:
    """按模型解码响应，失败转换为 DataValidationError"""
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        raise DataValidationError(
            f"响应解码失败: {endpoint}, {e.error_count()} 个字段错误",
            {"endpoint": endpoint, "model": model.__name__},
        ) from e


class HuobiClient(ExchangeClient):
    """
    Huobi 杠杆账户客户端

    - GET 参数放在查询串，POST 参数放在 JSON 请求体
    - 私有接口使用 HmacSHA256 签名（SignatureVersion 2）
    - 只有 GET 请求在网络异常时重试，POST 不重试，避免重复下单或借款
    """

    BASE_URL = "https://api.huobi.pro"

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        base_url: str | None = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.host = (urlparse(self.base_url).hostname or "").lower()
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._connected = False

        # 元数据缓存：交易对和杠杆账户 ID 运行期间不变
        self._symbol_entries: dict[str, dict[str, Any]] = {}
        self._symbols: dict[str, Symbol] = {}
        self._account_ids: dict[str, str] = {}

        self._get = retry_with_backoff(
            max_retries=max_retries,
            base_delay=0.5,
            exceptions=(ExchangeConnectionError,),
        )(self._get_once)

    @property
    def name(self) -> str:
        return "huobi"

    @property
    def is_connected(self) -> bool:
        return self._connected

    # ========================================
    # 连接管理
    # ========================================

    async def connect(self) -> None:
        """建立 REST 连接"""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )
        self._connected = True
        logger.info(f"Huobi REST 客户端已连接: {self.base_url}")

    async def disconnect(self) -> None:
        """断开连接"""
        if self._client:
            await self._client.aclose()
            self._client = None
        self._connected = False
        logger.info("Huobi 客户端已断开")

    async def __aenter__(self) -> "HuobiClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    # ========================================
    # 签名和请求
    # ========================================

    def _sign(self, method: str, path: str, params: dict[str, Any]) -> str:
        """
        生成签名后的查询串

        签名原文：METHOD\\nhost\\npath\\n按键排序的查询串
        """
        query: dict[str, Any] = {
            "AccessKeyId": self.api_key,
            "SignatureMethod": "HmacSHA256",
            "SignatureVersion": "2",
            "Timestamp": utc_now().strftime("%Y-%m-%dT%H:%M:%S"),
        }
        query.update(params)
        encoded = urlencode(sorted(query.items()), quote_via=quote)

        payload = "\n".join([method, self.host, path, encoded])
        digest = hmac.new(
            self.api_secret.encode("utf-8"),
            payload.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        signature = base64.b64encode(digest).decode()
        return f"{encoded}&Signature={quote(signature, safe='')}"

    def _url(self, method: str, path: str, params: dict[str, Any], signed: bool) -> str:
        if signed:
            return f"{path}?{self._sign(method, path, params)}"
        if params:
            return f"{path}?{urlencode(sorted(params.items()), quote_via=quote)}"
        return path

    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        signed: bool = True,
    ) -> dict[str, Any]:
        """发送请求并解析信封"""
        if not self._client:
            raise ExchangeError("客户端未连接", {"endpoint": path})

        # POST 参数全部放在请求体，查询串只包含签名参数
        url = self._url(method, path, params or {}, signed)

        try:
            if method == "GET":
                response = await self._client.get(url)
            else:
                response = await self._client.post(url, json=body or {})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExchangeConnectionError(
                f"请求失败: {method} {path}, {e}",
                {"endpoint": path, "error_type": type(e).__name__},
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise DataValidationError(f"响应不是合法 JSON: {path}", {"endpoint": path}) from e

        return self._unwrap(payload, path)

    @staticmethod
    def _unwrap(payload: Any, path: str) -> dict[str, Any]:
        """检查信封 status，错误时抛出 VenueError"""
        if not isinstance(payload, dict):
            raise DataValidationError(f"响应格式错误: {path}", {"endpoint": path})

        if payload.get("status") != "ok":
            code = str(payload.get("err-code", "unknown"))
            message = str(payload.get("err-msg", ""))
            logger.warning(
                f"交易所返回错误: {path}, {code} {message}",
                extra={"endpoint": path, "err_code": code},
            )
            raise VenueError(code, message, {"endpoint": path})

        return payload

    async def _get_once(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        signed: bool = True,
    ) -> dict[str, Any]:
        return await self._send("GET", path, params=params, signed=signed)

    async def _post(self, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._send("POST", path, body=body)

    # ========================================
    # 行情与元数据
    # ========================================

    async def get_ticker(self, symbol: str) -> Ticker:
        """获取聚合行情，涨跌幅 = (close - open) / open * 100"""
        path = "/market/detail/merged"
        payload = await self._get(path, {"symbol": venue_symbol(symbol)}, signed=False)
        tick = payload.get("tick")
        if not isinstance(tick, dict):
            raise DataValidationError(f"响应缺少 tick: {path}", {"endpoint": path})

        try:
            last = float(tick["close"])
            open_ = float(tick.get("open") or 0)
            bid = float((tick.get("bid") or [0])[0])
            ask = float((tick.get("ask") or [0])[0])
        except (KeyError, TypeError, ValueError, IndexError) as e:
            raise DataValidationError(f"行情解码失败: {symbol}", {"endpoint": path}) from e

        change = (last - open_) / open_ * 100 if open_ > 0 else 0.0
        return _decode(
            Ticker,
            {
                "symbol": symbol,
                "last": last,
                "highest_bid": bid,
                "lowest_ask": ask,
                "percent_change": change,
            },
            path,
        )

    async def get_symbol(self, symbol: str) -> Symbol:
        """
        获取交易对元数据

        首次调用时拉取全部交易对的原始条目，按需解码并缓存。
        所请求交易对的下单限制缺失时抛出 DataValidationError。
        """
        base, quote_ = split_symbol(symbol)
        key = f"{base}{quote_}"

        if key in self._symbols:
            return self._symbols[key]

        if not self._symbol_entries:
            await self._load_symbols()

        if key not in self._symbol_entries:
            raise DataNotFoundError(f"交易所不支持该交易对: {symbol}", {"symbol": symbol})

        path = "/v1/common/symbols"
        entry = _decode(_SymbolEntry, self._symbol_entries[key], path)
        try:
            sym = entry.to_symbol()
        except PydanticValidationError as e:
            raise DataValidationError(
                f"交易对元数据解码失败: {symbol}",
                {"endpoint": path, "symbol": symbol},
            ) from e

        self._symbols[key] = sym
        return sym

    async def _load_symbols(self) -> None:
        path = "/v1/common/symbols"
        payload = await self._get(path, signed=False)
        data = payload.get("data")
        if not isinstance(data, list):
            raise DataValidationError(f"响应缺少 data: {path}", {"endpoint": path})

        for item in data:
            if not isinstance(item, dict):
                continue
            base = str(item.get("base-currency") or "").lower()
            quote_ = str(item.get("quote-currency") or "").lower()
            if base and quote_:
                self._symbol_entries[f"{base}{quote_}"] = item

        logger.info(f"已加载交易对列表: {len(self._symbol_entries)} 个")

    # ========================================
    # 杠杆账户
    # ========================================

    async def get_account_carry(self, symbol: str) -> list[BalanceEntry]:
        """获取杠杆账户余额分桶，同时缓存账户 ID"""
        path = "/v1/margin/accounts/balance"
        payload = await self._get(path, {"symbol": venue_symbol(symbol)})
        data = payload.get("data")
        if not isinstance(data, list) or not data:
            raise DataNotFoundError(f"未找到杠杆账户: {symbol}", {"symbol": symbol})

        account = data[0]
        if "id" in account:
            self._account_ids[symbol] = str(account["id"])

        return [_decode(BalanceEntry, entry, path) for entry in account.get("list") or []]

    async def _account_id(self, symbol: str) -> str:
        if symbol not in self._account_ids:
            await self.get_account_carry(symbol)
        if symbol not in self._account_ids:
            raise DataNotFoundError(f"未找到杠杆账户 ID: {symbol}", {"symbol": symbol})
        return self._account_ids[symbol]

    async def get_borrow_orders(
        self, symbol: str, state: BorrowState | None = None
    ) -> list[BorrowOrder]:
        """获取借贷订单"""
        path = "/v1/margin/loan-orders"
        params: dict[str, Any] = {"symbol": venue_symbol(symbol)}
        if state is not None:
            params["states"] = BorrowState(state).value

        payload = await self._get(path, params)
        return [_decode(BorrowOrder, item, path) for item in payload.get("data") or []]

    async def borrow(self, symbol: str, currency: str, amount: float) -> str:
        """申请借款"""
        path = "/v1/margin/orders"
        payload = await self._post(
            path,
            {
                "symbol": venue_symbol(symbol),
                "currency": currency.lower(),
                "amount": format_amount(amount, AMOUNT_FORMAT_PRECISION),
            },
        )
        return _decode(_CreatedId, payload, path).data

    async def repay(self, borrow_order_id: str, amount: float) -> None:
        """归还借贷订单"""
        await self._post(
            f"/v1/margin/orders/{borrow_order_id}/repay",
            {"amount": format_amount(amount, AMOUNT_FORMAT_PRECISION)},
        )

    # ========================================
    # 订单
    # ========================================

    async def get_open_orders(
        self, symbol: str, states: Sequence[OrderState]
    ) -> list[OpenOrder]:
        """获取指定状态的订单"""
        path = "/v1/order/orders"
        payload = await self._get(
            path,
            {
                "symbol": venue_symbol(symbol),
                "states": ",".join(OrderState(s).value for s in states),
            },
        )
        return [_decode(OpenOrder, item, path) for item in payload.get("data") or []]

    async def cancel_all_orders(self, symbol: str) -> None:
        """批量撤销未完成订单"""
        account_id = await self._account_id(symbol)
        await self._post(
            "/v1/order/orders/batchCancelOpenOrders",
            {"account-id": account_id, "symbol": venue_symbol(symbol)},
        )

    async def place_market_order(
        self, symbol: str, side: OrderSide, amount: float
    ) -> str:
        """下杠杆市价单"""
        account_id = await self._account_id(symbol)
        path = "/v1/order/orders/place"
        payload = await self._post(
            path,
            {
                "account-id": account_id,
                "amount": format_amount(amount, AMOUNT_FORMAT_PRECISION),
                "source": "margin-api",
                "symbol": venue_symbol(symbol),
                "type": f"{OrderSide(side).value}-market",
            },
        )
        return _decode(_CreatedId, payload, path).data

    async def get_order_detail(self, order_id: str) -> OrderDetail:
        """获取订单成交详情"""
        path = f"/v1/order/orders/{order_id}"
        payload = await self._get(path)
        return _decode(OrderDetail, payload.get("data"), path)
