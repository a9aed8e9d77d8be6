from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from lanmon.api.v1.router import v1_router
from lanmon.config import settings
from lanmon.core.database import close_db, init_db
from lanmon.core.exceptions import (
    LanMonitorError,
    lanmon_error_handler,
    request_validation_handler,
    storage_error_handler,
)
from lanmon.core.middleware import RequestLoggingMiddleware
from lanmon.core.redis import close_redis
from lanmon.services.agent_reporter import AgentReporter, AgentStatusStore
from lanmon.services.alerts import AlertRecorder
from lanmon.services.chat_relay import ChatRelay
from lanmon.services.checks import CheckRunner
from lanmon.services.gpu import GpuReader, gpu_query_command
from lanmon.services.history import HistoryStore
from lanmon.services.monitor import ServiceMonitor
from lanmon.services.sweep_poller import SweepPoller
from lanmon.services.targets import load_agents, load_targets

_NAME_TO_LEVEL = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "warn": 30,
    "error": 40,
    "critical": 50,
}

structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        _NAME_TO_LEVEL.get(settings.lanmon_log_level.lower(), 20)
    ),
)

logger = structlog.get_logger()


def build_monitor(http_client: httpx.AsyncClient) -> ServiceMonitor:
    """Wire checkers, stores and the GPU reader from settings."""
    runner = CheckRunner(
        http_client,
        http_timeout_ms=settings.lanmon_http_timeout_ms,
        ping_timeout_s=settings.lanmon_ping_timeout_seconds,
        user_agent=settings.lanmon_user_agent,
    )
    gpu_reader = GpuReader(
        command=gpu_query_command(settings.lanmon_gpu_command),
        timeout_s=settings.lanmon_gpu_timeout_seconds,
        warning_temp_c=settings.lanmon_gpu_warning_temp_c,
    )
    return ServiceMonitor(
        targets=load_targets(settings.lanmon_targets_path),
        runner=runner,
        history=HistoryStore(retention_days=settings.lanmon_history_retention_days),
        alerts=AlertRecorder(),
        gpu_reader=gpu_reader,
        cache_ttl_seconds=settings.lanmon_cache_ttl_seconds,
        alert_every_down=settings.lanmon_alert_every_down,
    )


def build_chat_relay() -> ChatRelay:
    agents = [a.strip() for a in settings.lanmon_presence_agents.split(",") if a.strip()]
    return ChatRelay(
        agents=agents,
        stream=settings.lanmon_chat_stream,
        presence_prefix=settings.lanmon_presence_prefix,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    try:
        await init_db()
    except Exception:
        # Without storage there is nothing to serve; let the process exit non-zero
        logger.exception("storage_init_failed", db_url=settings.db_url)
        raise

    http_client = httpx.AsyncClient()
    monitor = build_monitor(http_client)
    app.state.monitor = monitor
    app.state.chat_relay = build_chat_relay()

    try:
        await monitor.alerts.prune(settings.lanmon_alert_retention_days)
    except Exception:
        logger.exception("alert_prune_failed")

    background = []
    if settings.lanmon_background_tasks:
        if settings.lanmon_sweep_interval_seconds > 0:
            background.append(SweepPoller(
                monitor,
                interval=settings.lanmon_sweep_interval_seconds,
                alert_retention_days=settings.lanmon_alert_retention_days,
            ))
        if settings.lanmon_agent_interval_seconds > 0:
            background.append(AgentReporter(
                load_agents(settings.lanmon_agents_path),
                http_client,
                AgentStatusStore(),
                interval=settings.lanmon_agent_interval_seconds,
                timeout_s=settings.lanmon_agent_timeout_seconds,
            ))
    for task in background:
        await task.start()

    logger.info(
        "lanmon_starting",
        targets=len(monitor.targets),
        db_url=settings.db_url,
        background_tasks=len(background),
    )
    yield

    for task in background:
        await task.stop()
    await http_client.aclose()
    await close_redis()
    await close_db()
    logger.info("lanmon_stopping")


app = FastAPI(
    title="LAN Monitor",
    description="Service health dashboard backend for the home LAN",
    version="1.0.0",
    lifespan=lifespan,
)

# Exception handlers
app.add_exception_handler(LanMonitorError, lanmon_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(SQLAlchemyError, storage_error_handler)

# Middleware (Starlette: last-added = outermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.lanmon_cors_origins.split(","),
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Routes
app.include_router(v1_router, prefix="/api")


@app.get("/")
async def root():
    return {"service": "lan-monitor", "version": "1.0.0"}
