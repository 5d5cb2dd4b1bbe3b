"""公共模块"""

from .config import (
    ExchangeConfig,
    NotifierConfig,
    SchedulerConfig,
    Settings,
    StrategyConfig,
    TradingConfig,
    load_settings,
    load_yaml_config,
)
from .enums import (
    ActionKind,
    BorrowState,
    CarryBucket,
    ExecutionStep,
    OrderSide,
    OrderState,
    PositionStatus,
    Signal,
)
from .exceptions import (
    DataError,
    DataNotFoundError,
    DataValidationError,
    ExchangeConnectionError,
    ExchangeError,
    ExecutionError,
    NotifierError,
    RepayError,
    SignalValidationError,
    StepError,
    StrategyError,
    SymbolValidationError,
    TradingSystemError,
    ValidationError,
    VenueError,
)
from .logging import JSONFormatter, configure_logging, get_logger
from .models import (
    BalanceEntry,
    BorrowOrder,
    BorrowRecord,
    Carry,
    ExecutionReport,
    Notification,
    OpenOrder,
    OrderDetail,
    RepayRecord,
    Symbol,
    SymbolLimits,
    Ticker,
    TradePlan,
)
from .retry import retry_with_backoff
from .utils import floor_amount, format_amount, split_symbol, utc_now, venue_symbol

__all__ = [
    # Config
    "ExchangeConfig",
    "NotifierConfig",
    "SchedulerConfig",
    "Settings",
    "StrategyConfig",
    "TradingConfig",
    "load_settings",
    "load_yaml_config",
    # Enums
    "ActionKind",
    "BorrowState",
    "CarryBucket",
    "ExecutionStep",
    "OrderSide",
    "OrderState",
    "PositionStatus",
    "Signal",
    # Exceptions
    "DataError",
    "DataNotFoundError",
    "DataValidationError",
    "ExchangeConnectionError",
    "ExchangeError",
    "ExecutionError",
    "NotifierError",
    "RepayError",
    "SignalValidationError",
    "StepError",
    "StrategyError",
    "SymbolValidationError",
    "TradingSystemError",
    "ValidationError",
    "VenueError",
    # Logging
    "JSONFormatter",
    "configure_logging",
    "get_logger",
    # Models
    "BalanceEntry",
    "BorrowOrder",
    "BorrowRecord",
    "Carry",
    "ExecutionReport",
    "Notification",
    "OpenOrder",
    "OrderDetail",
    "RepayRecord",
    "Symbol",
    "SymbolLimits",
    "Ticker",
    "TradePlan",
    # Retry
    "retry_with_backoff",
    # Utils
    "floor_amount",
    "format_amount",
    "split_symbol",
    "utc_now",
    "venue_symbol",
]
