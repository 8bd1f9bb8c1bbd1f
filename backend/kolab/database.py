"""
数据库配置 - SQLAlchemy 持久化层（文档存储适配器）

SQLite 连接关闭驱动自带的事务管理，由 begin 事件显式发出 BEGIN IMMEDIATE，
使"冲突检查 + 写入"在同一个串行化事务内完成。
"""
import secrets
import string

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from kolab.config import settings

_ID_ALPHABET = string.digits + string.ascii_lowercase
ID_LENGTH = 9

Base = declarative_base()


def new_id() -> str:
    """随机 9 位 base-36 记录 ID"""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(ID_LENGTH))


def _enable_immediate_transactions(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # 交由 begin 事件控制事务边界
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_store_engine(url: str, in_memory: bool = False) -> Engine:
    """
    创建数据库引擎

    Args:
        url: 数据库 URL
        in_memory: 内存 SQLite（测试用），所有会话共享同一连接
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if in_memory:
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        _enable_immediate_transactions(engine)
        return engine
    return create_engine(url, pool_pre_ping=True)


engine = create_store_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db():
    """依赖注入：获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None):
    """初始化数据库表"""
    from kolab.models import ontology  # noqa
    Base.metadata.create_all(bind=bind or engine)
