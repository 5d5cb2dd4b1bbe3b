"""
CTS 杠杆交易代理 - 工具函数

UTC 时间、数量截断和交易对拆分。
"""

from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from .exceptions import SymbolValidationError


def utc_now() -> datetime:
    """
    获取当前 UTC 时间

    Returns:
        带时区信息的 UTC datetime
    """
    return datetime.now(timezone.utc)


def floor_amount(value: float, precision: int) -> float:
    """
    按精度向下截断

    用十进制计算，避免 0.29 * 1000 = 289.999... 这类浮点误差。

    Args:
        value: 原始数量
        precision: 保留小数位数

    Returns:
        截断后的数量，非正数返回 0.0
    """
    if value <= 0:
        return 0.0
    try:
        quantum = Decimal(1).scaleb(-precision)
        return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_DOWN))
    except InvalidOperation:
        return 0.0


def format_amount(value: float, precision: int) -> str:
    """截断后格式化为交易所接受的字符串（不使用科学计数法）"""
    text = f"{floor_amount(value, precision):.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def split_symbol(symbol: str) -> tuple[str, str]:
    """
    拆分交易对

    Args:
        symbol: 形如 btc_usdt 的交易对

    Returns:
        (基础币种, 计价币种)，均为小写
    """
    parts = symbol.strip().lower().split("_") if symbol else []
    if len(parts) != 2 or not all(parts):
        raise SymbolValidationError(
            "invalid symbol, a valid symbol should look like: btc_usdt",
            {"symbol": symbol},
        )
    return parts[0], parts[1]


def venue_symbol(symbol: str) -> str:
    """交易所格式的交易对：btc_usdt -> btcusdt"""
    return symbol.replace("_", "").lower()
