"""
CTS 杠杆交易代理 - 重试装饰器

只用于传输层（交易所 GET 请求、通知推送）。执行引擎内部从不重试。
"""

import asyncio
import functools
import random
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from .logging import get_logger

logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential: bool = True,
    jitter: bool = True,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """
    异步重试装饰器

    Args:
        max_retries: 最大重试次数（不含首次调用）
        base_delay: 基础延迟（秒）
        max_delay: 最大延迟（秒）
        exponential: 是否使用指数退避
        jitter: 是否添加随机抖动
        exceptions: 需要重试的异常类型，其余异常直接上抛

    Returns:
        装饰器函数
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        def on_failure(attempt: int, error: BaseException) -> float | None:
            """返回下次重试前的等待秒数，None 表示重试耗尽"""
            if attempt >= max_retries:
                logger.warning(
                    f"重试耗尽: {func.__name__}, 尝试 {attempt + 1}/{max_retries + 1}",
                    extra={"error": str(error)},
                )
                return None

            delay = _calculate_delay(attempt, base_delay, max_delay, exponential, jitter)
            logger.info(
                f"重试: {func.__name__}, 尝试 {attempt + 1}/{max_retries + 1}, "
                f"延迟 {delay:.2f}s",
                extra={"error": str(error)},
            )
            return delay

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    delay = on_failure(attempt, e)
                    if delay is None:
                        raise
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator


def _calculate_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential: bool,
    jitter: bool,
) -> float:
    """计算重试延迟"""
    delay = base_delay * (2 ** attempt) if exponential else base_delay
    delay = min(delay, max_delay)

    if jitter:
        delay = delay * (0.5 + random.random())

    return delay
