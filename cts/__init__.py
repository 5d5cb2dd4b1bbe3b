"""
CTS 杠杆交易代理

轮询信号源，在杠杆账户上执行满仓 / 空仓切换。
"""

__version__ = "0.1.0"
