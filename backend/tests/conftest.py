"""
Pytest 配置和共享 fixtures
"""
import pytest
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from kolab.config import get_catalog
from kolab.database import Base, create_store_engine, get_db
from kolab.models import ontology  # noqa: F401
from kolab.main import app
from kolab_core.domain.catalog import PropertyCatalog


CATALOG_DATA = {
    "properties": [
        {
            "id": "prop_1",
            "name": "Townhouse",
            "rooms": [
                {"id": "T1", "name": "T1", "type": "Studio"},
                {"id": "T2", "name": "T2", "type": "Studio"},
                {"id": "T3", "name": "T3", "type": "Double"},
            ],
            "common_areas": [
                {"id": "T_Common", "name": "Common Space", "type": "Common"},
            ],
        },
        {
            "id": "prop_2",
            "name": "Neighbours",
            "rooms": [
                {"id": "N1", "name": "N1", "type": "Studio"},
                {"id": "N2", "name": "N2", "type": "Double"},
            ],
            "common_areas": [
                {"id": "N_Rooftop", "name": "Rooftop", "type": "Common"},
            ],
        },
    ]
}


def _noop(event):
    """不做任何事的事件发布器"""
    return None


@pytest.fixture
def noop_publisher():
    return _noop


@pytest.fixture
def catalog():
    """小型测试目录：两处房产、五个房间、两个公共区域"""
    return PropertyCatalog.from_mapping(CATALOG_DATA)


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_store_engine("sqlite://", in_memory=True)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """创建数据库会话"""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session, catalog):
    """创建测试客户端（不触发 lifespan：不建库文件、不启动调度）"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog] = lambda: catalog
    yield TestClient(app)
    app.dependency_overrides.clear()


class EventRecorder:
    """记录发布的事件，供断言使用"""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    @property
    def types(self):
        return [e.event_type for e in self.events]

    def of_type(self, event_type):
        return [e for e in self.events if e.event_type == event_type]


@pytest.fixture
def recorder():
    return EventRecorder()
