"""
CTS 杠杆交易代理 - 自定义异常

异常层级：
- TradingSystemError: 基础异常
  - ValidationError: 本地校验异常（不发起任何交易所调用）
  - ExchangeError: 交易所异常（网络 / 业务）
  - DataError: 数据层异常（响应解码、数据缺失）
  - ExecutionError: 执行层异常（按步骤包装）
  - StrategyError: 信号源异常
  - NotifierError: 通知异常（只记录，不上抛）
"""

from typing import Any


class TradingSystemError(Exception):
    """交易系统基础异常"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================
# 本地校验异常
# ============================================================

class ValidationError(TradingSystemError):
    """本地校验失败"""
    pass


class SignalValidationError(ValidationError):
    """未知信号"""
    pass


class SymbolValidationError(ValidationError):
    """交易对格式错误，正确格式如 btc_usdt"""
    pass


# ============================================================
# 交易所异常
# ============================================================

class ExchangeError(TradingSystemError):
    """交易所异常"""
    pass


class ExchangeConnectionError(ExchangeError):
    """网络 / 传输层异常"""
    pass


class VenueError(ExchangeError):
    """
    交易所业务异常

    保留交易所原始错误码和错误信息，便于排查。
    """

    def __init__(
        self,
        code: str,
        venue_message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"Code: {code}, {venue_message}", details)
        self.code = code
        self.venue_message = venue_message


# ============================================================
# 数据层异常
# ============================================================

class DataError(TradingSystemError):
    """数据层异常"""
    pass


class DataNotFoundError(DataError):
    """数据未找到"""
    pass


class DataValidationError(DataError):
    """数据验证失败"""
    pass


# ============================================================
# 执行层异常
# ============================================================

class ExecutionError(TradingSystemError):
    """执行层异常"""
    pass


class StepError(ExecutionError):
    """
    步骤失败

    用失败步骤名包装原始异常，原始异常保存在 __cause__ 中。
    """

    def __init__(self, step: str, cause: Exception):
        super().__init__(
            f"{step}: {cause}",
            {"step": step, "error_type": type(cause).__name__},
        )
        self.step = step
        self.cause = cause


class RepayError(ExecutionError):
    """
    还款失败汇总

    每笔借贷订单独立还款，失败项汇总为一个异常。
    """

    def __init__(self, failures: dict[str, str]):
        message = ";".join(f"{error}(ID: {order_id})" for order_id, error in failures.items())
        super().__init__(message, {"failures": dict(failures)})
        self.failures = dict(failures)


# ============================================================
# 其他
# ============================================================

class StrategyError(TradingSystemError):
    """信号源异常"""
    pass


class NotifierError(TradingSystemError):
    """通知推送失败"""
    pass
