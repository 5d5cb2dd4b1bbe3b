"""
CTS 杠杆交易代理 - 命令行入口

用法：
    cts --symbol btc_usdt --strategy ripdog --key KEY --secret SECRET
"""

import argparse
import asyncio
import sys
from typing import Any

from cts.agent import TradingAgent
from cts.common.config import Settings, load_settings
from cts.common.exceptions import TradingSystemError
from cts.common.logging import configure_logging, get_logger
from cts.core.execution.engine import ExecutionEngine
from cts.core.execution.exchange import HuobiClient
from cts.notify import DingTalkNotifier, LogNotifier, Notifier
from cts.strategy import available, strategies

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cts", description="the coin trading strategy")
    parser.add_argument("--config", help="YAML 配置文件路径")
    parser.add_argument(
        "--symbol",
        "--currency",
        dest="symbol",
        help="交易对，如 btc_usdt、xrp_usdt",
    )
    parser.add_argument(
        "--strategy",
        help=f"策略名称，可选：{', '.join(available())}",
    )
    parser.add_argument("--key", help="API Key")
    parser.add_argument("--secret", help="API Secret")
    parser.add_argument("--dingtalk-token", help="钉钉群机器人 access_token")
    parser.add_argument("--log-level", help="日志级别（DEBUG / INFO / WARNING）")
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=None,
        help="执行指定周期数后退出（默认一直运行）",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """命令行参数覆盖配置文件"""
    overrides: dict[str, Any] = {
        "log_level": args.log_level,
        "exchange": {"api_key": args.key, "api_secret": args.secret},
        "trading": {"symbol": args.symbol},
        "strategy": {"name": args.strategy},
        "notifier": {"dingtalk_token": args.dingtalk_token},
    }
    return load_settings(args.config, overrides)


def build_notifier(settings: Settings) -> Notifier:
    if settings.notifier.dingtalk_token:
        return DingTalkNotifier(
            settings.notifier.dingtalk_token,
            at_all=settings.notifier.at_all,
            timeout=settings.notifier.timeout,
        )
    logger.warning("未配置钉钉 access_token，通知只写入日志")
    return LogNotifier()


async def run(settings: Settings, max_cycles: int | None = None) -> None:
    exchange = HuobiClient(
        api_key=settings.exchange.api_key,
        api_secret=settings.exchange.api_secret,
        base_url=settings.exchange.base_url,
        timeout=settings.exchange.timeout,
        max_retries=settings.exchange.max_retries,
    )
    notifier = build_notifier(settings)

    sources = strategies(exchange, settings.strategy)
    if settings.strategy.name not in sources:
        raise TradingSystemError(
            f"unknown strategy: {settings.strategy.name}",
            {"available": available()},
        )

    engine = ExecutionEngine.from_settings(exchange, settings, notifier=notifier)
    agent = TradingAgent(
        engine,
        sources[settings.strategy.name],
        settings.trading.symbol,
        notifier=notifier,
        poll_interval=settings.scheduler.poll_interval,
        report_interval=settings.scheduler.report_interval,
    )

    await exchange.connect()
    try:
        await agent.run_forever(max_cycles=max_cycles)
    finally:
        await exchange.disconnect()
        await notifier.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = settings_from_args(args)
    except ValueError as e:
        print(f"配置错误: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.log_json)
    logger.info("starting...")

    try:
        asyncio.run(run(settings, args.max_cycles))
    except TradingSystemError as e:
        logger.error(f"启动失败: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("收到中断信号，退出")
    return 0


if __name__ == "__main__":
    sys.exit(main())
