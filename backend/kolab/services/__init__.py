"""
服务层 - 存储读写与编排

所有面向存储的操作返回 OperationResult，不向调用方抛出存储异常。
"""
