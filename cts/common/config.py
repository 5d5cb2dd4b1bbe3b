"""
CTS 杠杆交易代理 - 配置加载

支持 YAML 配置文件和环境变量替换。
优先级：命令行参数 > 配置文件 > 默认值
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from .logging import get_logger

logger = get_logger(__name__)


class ExchangeConfig(BaseModel):
    """交易所配置"""

    base_url: str = Field(default="https://api.huobi.pro")
    api_key: str = Field(default="")
    api_secret: str = Field(default="")
    timeout: float = Field(default=10.0, gt=0.0, le=120.0)
    max_retries: int = Field(default=3, ge=0, le=10)


class TradingConfig(BaseModel):
    """交易执行配置（经验参数，按风险偏好调整）"""

    symbol: str = Field(default="btc_usdt")
    dust_threshold: float = Field(default=10.0, ge=0.0, description="计价币种的粉尘阈值")
    taker_fee_rate: float = Field(default=0.002, ge=0.0, lt=0.1)
    settle_wait: float = Field(default=1.0, ge=0.0, le=60.0, description="下单后查询成交前的等待秒数")
    borrow_ratio: float = Field(default=1.0, gt=0.0, le=1.0, description="每次借款占可借额度的比例")
    max_borrow_rounds: int = Field(default=1, ge=1, le=10)
    borrow_precision: int = Field(default=3, ge=0, le=8)
    repay_precision: int = Field(default=8, ge=0, le=8)


class StrategyConfig(BaseModel):
    """信号源配置"""

    name: str = Field(default="ripdog")
    threshold: float = Field(default=5.0, gt=0.0, le=100.0, description="涨跌幅阈值（%）")
    watch_symbols: list[str] = Field(default_factory=lambda: ["doge_usdt", "xrp_usdt"])


class NotifierConfig(BaseModel):
    """通知配置"""

    dingtalk_token: str = Field(default="")
    at_all: bool = Field(default=False)
    timeout: float = Field(default=3.0, gt=0.0, le=30.0)


class SchedulerConfig(BaseModel):
    """调度配置"""

    poll_interval: float = Field(default=1.0, gt=0.0, le=3600.0)
    report_interval: float = Field(default=3600.0, ge=0.0, description="健康报告间隔（秒），0 表示关闭")


class Settings(BaseModel):
    """系统配置"""

    env: str = Field(default="production")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    trading: TradingConfig = Field(default_factory=TradingConfig)
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)


def _substitute_env_vars(value: Any) -> Any:
    """替换环境变量占位符 ${VAR_NAME}，未设置的变量替换为空字符串"""
    if isinstance(value, str):
        pattern = r"\$\{([^}]+)\}"

        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            if var_name not in os.environ:
                logger.warning(f"环境变量未设置: {var_name}")
                return ""
            return os.environ[var_name]

        return re.sub(pattern, replacer, value)

    if isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]

    return value


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """
    加载 YAML 配置文件

    Args:
        path: 配置文件路径

    Returns:
        配置字典，文件不存在时返回空字典
    """
    path = Path(path)

    if not path.exists():
        logger.warning(f"配置文件不存在: {path}")
        return {}

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        logger.warning(f"配置文件格式错误，已忽略: {path}")
        return {}

    return _substitute_env_vars(data)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """递归合并，override 中为 None 的值不覆盖"""
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        if isinstance(value, dict):
            current = merged.get(key)
            merged[key] = _merge(current if isinstance(current, dict) else {}, value)
        else:
            merged[key] = value
    return merged


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """
    加载系统配置

    Args:
        config_path: YAML 配置文件路径
        overrides: 覆盖项（通常来自命令行），嵌套字典，None 值忽略

    Returns:
        Settings 实例
    """
    config_data: dict[str, Any] = {}

    if config_path:
        config_data = load_yaml_config(config_path)

    if overrides:
        config_data = _merge(config_data, overrides)

    return Settings(**config_data)
