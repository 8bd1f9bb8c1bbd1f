"""
kolab - 共居物业管理后端

FastAPI 应用层：配置、SQLAlchemy 持久化、服务与路由。
业务规则全部在 kolab_core 中，应用层只负责存储读写与编排。
"""
