"""
CTS 杠杆交易代理 - 结构化日志

JSON 行格式输出，调用方通过 extra 传入的字段会合并到 "extra" 中。
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# LogRecord 自带属性，不属于调用方传入的 extra
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}

_DEFAULT_LEVEL = logging.INFO
_USE_JSON = True


class JSONFormatter(logging.Formatter):
    """JSON 格式日志格式化器"""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = _collect_extra(record)
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, ensure_ascii=False, default=str)


def _collect_extra(record: logging.LogRecord) -> dict[str, Any]:
    """提取调用方附加的字段"""
    extra: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key not in _RESERVED_ATTRS and not key.startswith("_"):
            extra[key] = value
    return extra


def _build_handler(level: int, use_json: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if use_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    return handler


def get_logger(
    name: str,
    level: int | None = None,
    use_json: bool | None = None,
) -> logging.Logger:
    """
    获取结构化日志记录器

    Args:
        name: 日志记录器名称
        level: 日志级别，默认使用 configure_logging 设置的级别
        use_json: 是否使用 JSON 格式，默认使用 configure_logging 设置

    Returns:
        配置好的 Logger 实例
    """
    logger = logging.getLogger(name)

    # 避免重复添加 handler
    if logger.handlers:
        return logger

    level = _DEFAULT_LEVEL if level is None else level
    use_json = _USE_JSON if use_json is None else use_json

    logger.setLevel(level)
    logger.addHandler(_build_handler(level, use_json))
    logger.propagate = False

    return logger


def configure_logging(level: int | str = logging.INFO, use_json: bool = True) -> None:
    """
    设置全局日志级别和格式

    已创建的 cts.* 记录器会被重新配置。
    """
    global _DEFAULT_LEVEL, _USE_JSON

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    _DEFAULT_LEVEL = level
    _USE_JSON = use_json

    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger) or not name.startswith("cts"):
            continue
        logger.setLevel(level)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.addHandler(_build_handler(level, use_json))
