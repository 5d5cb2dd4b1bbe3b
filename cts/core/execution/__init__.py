"""
CTS 杠杆交易代理 - 执行层

执行层只执行，不判断：信号由信号源给出，执行层负责把信号落到账户上。
"""

from .carry import compute_carry
from .constants import ExecutionConstants
from .engine import ExecutionEngine, resolve_command
from .exchange import ExchangeClient, HuobiClient
from .leverage import LeverageController
from .planner import plan_trade
from .position import classify_position, is_redundant

__all__ = [
    # Constants
    "ExecutionConstants",
    # Engine
    "ExecutionEngine",
    "resolve_command",
    # Exchange
    "ExchangeClient",
    "HuobiClient",
    # Components
    "LeverageController",
    "compute_carry",
    "classify_position",
    "is_redundant",
    "plan_trade",
]
