# rwms/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rwms.api.routers.cells import router as cells_router
from rwms.api.routers.inventory import router as inventory_router
from rwms.api.routers.logistics import router as logistics_router
from rwms.api.routers.picking_tasks import router as picking_tasks_router
from rwms.api.routers.units import router as units_router
from rwms.core.config import get_settings
from rwms.core.logging import setup_logging
from rwms.db.session import AsyncSessionLocal, close_engines
from rwms.http_problem_handlers import register_exception_handlers
from rwms.obs.metrics import PrometheusMiddleware
from rwms.obs.metrics import router as metrics_router
from rwms.services.inventory_lock import ensure_session_row

settings = get_settings()
logger = logging.getLogger("rwms")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging(settings.LOG_LEVEL, sql_echo=settings.SQL_ECHO)
    # 全局盘点锁行必须存在（schema 由 alembic 负责）
    async with AsyncSessionLocal() as session:
        await ensure_session_row(session)
        await session.commit()
    logger.info("rwms started (env=%s)", settings.ENV)
    yield
    await close_engines()


app = FastAPI(
    title="RWMS",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(PrometheusMiddleware)

register_exception_handlers(app)

# ===========================
#          挂载路由
# ===========================
# 核心操作
app.include_router(units_router)
app.include_router(picking_tasks_router)
app.include_router(inventory_router)

# 主数据 / 出库
app.include_router(cells_router)
app.include_router(logistics_router)

# 观测
app.include_router(metrics_router)


@app.get("/")
async def root():
    return {"name": "RWMS", "version": "1.0.0"}


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
