"""
Kolab PMS 主应用入口
合租公寓管理系统：预订、客人、保洁与维修
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kolab.config import settings
from kolab.database import init_db
from kolab.routers import rooms, bookings, guests, housekeeping, maintenance, reports

logger = logging.getLogger(__name__)

RECURRING_JOB_ID = "recurring_maintenance"


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def run_recurring_maintenance() -> int:
    """定时任务：生成到期的周期维修问题"""
    from kolab.config import get_catalog
    from kolab.database import SessionLocal
    from kolab.services.maintenance_service import MaintenanceService

    db = SessionLocal()
    try:
        created = MaintenanceService(db, get_catalog()).ensure_recurring_issues()
        return len(created)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    configure_logging()

    # 初始化数据库
    init_db()

    # 注册事件处理器
    from kolab.services.event_handlers import register_event_handlers
    register_event_handlers()

    # 周期维修调度
    from kolab_core.scheduler import scheduler_registry
    if settings.ENABLE_SCHEDULER:
        from kolab.services.scheduler_backend import APSchedulerBackend
        backend = APSchedulerBackend()
        backend.add_cron_job(RECURRING_JOB_ID, run_recurring_maintenance, settings.RECURRING_CHECK_CRON)
        backend.start()
        scheduler_registry.set_backend(backend)
    logger.info(f"{settings.APP_NAME} started")

    yield

    backend = scheduler_registry.get_backend()
    if backend is not None:
        backend.shutdown()
        scheduler_registry.clear()


# 创建应用
app = FastAPI(
    title="Kolab PMS - 合租公寓管理系统",
    description="预订、客人、保洁与维修管理",
    version="1.0.0",
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(rooms.router)
app.include_router(bookings.router)
app.include_router(guests.router)
app.include_router(housekeeping.router)
app.include_router(maintenance.router)
app.include_router(reports.router)


@app.get("/health")
def health_check():
    """健康检查"""
    return {"status": "healthy", "app": settings.APP_NAME}
