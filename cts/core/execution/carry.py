"""
CTS 杠杆交易代理 - 持仓分桶计算

从杠杆账户的原始余额列表中提取单个币种的分桶快照。纯函数，无网络调用。
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from cts.common.enums import CarryBucket
from cts.common.exceptions import DataValidationError
from cts.common.models import BalanceEntry, Carry

_BUCKET_FIELDS: dict[str, str] = {
    CarryBucket.TRADE.value: "trade",
    CarryBucket.FROZEN.value: "frozen",
    CarryBucket.TRANSFER_OUT_AVAILABLE.value: "transfer_out_available",
    CarryBucket.LOAN_AVAILABLE.value: "loan_available",
    CarryBucket.LOAN.value: "loan",
    CarryBucket.INTEREST.value: "interest",
}


def compute_carry(
    entries: Iterable[BalanceEntry | Mapping[str, Any]],
    currency: str,
) -> Carry:
    """
    计算单个币种的余额分桶

    缺失的分桶为 0，未知分桶类型忽略。

    Args:
        entries: 余额分桶列表（模型或交易所原始字典）
        currency: 币种，不区分大小写

    Returns:
        Carry 快照

    Raises:
        DataValidationError: 原始数据格式错误
    """
    currency = currency.lower()
    buckets: dict[str, float] = {}

    for raw in entries:
        entry = _to_entry(raw)
        if entry.currency.lower() != currency:
            continue
        field = _BUCKET_FIELDS.get(entry.bucket_type)
        if field is not None:
            buckets[field] = entry.amount

    return Carry(currency=currency, **buckets)


def _to_entry(raw: BalanceEntry | Mapping[str, Any]) -> BalanceEntry:
    if isinstance(raw, BalanceEntry):
        return raw
    try:
        return BalanceEntry.model_validate(raw)
    except PydanticValidationError as e:
        raise DataValidationError(
            f"余额数据格式错误: {e.error_count()} 个字段无效",
            {"entry": raw},
        ) from e
