"""核心层：执行引擎与交易所接口"""
