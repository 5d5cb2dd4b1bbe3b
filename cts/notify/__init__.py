"""
CTS 杠杆交易代理 - 通知模块

向运维渠道推送借款、下单、还款和健康报告。
"""

from .base import LogNotifier, Notifier
from .dingtalk import DingTalkNotifier

__all__ = [
    "Notifier",
    "LogNotifier",
    "DingTalkNotifier",
]
