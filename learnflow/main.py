import logging
import time

import structlog
from fastapi import FastAPI, Request
from sqlalchemy import text

from .config import settings
from .infrastructure.db import engine
from .infrastructure.metrics import http_request_duration_seconds, http_requests_total, metrics_endpoint
from .infrastructure.models import Base
from .interfaces.http.routers import curriculum, progress, schedule

VERSION = "0.1.0"


def configure_logging(level_name: str) -> None:
    """JSON-логи в stdout, уровень из настроек."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def endpoint_label(request: Request) -> str:
    # шаблон маршрута вместо пути: id уроков не раздувают метки
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


configure_logging(settings.LOG_LEVEL)
logger = structlog.get_logger()

app = FastAPI(title="LearnFlow Progress Service", version=VERSION)


@app.middleware("http")
async def observe_request(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration = time.perf_counter() - started

    endpoint = endpoint_label(request)
    http_requests_total.labels(method=request.method, endpoint=endpoint, status=response.status_code).inc()
    http_request_duration_seconds.labels(method=request.method, endpoint=endpoint).observe(duration)
    logger.info(
        "http_request",
        method=request.method,
        path=request.url.path,
        endpoint=endpoint,
        status_code=response.status_code,
        duration_ms=round(duration * 1000, 2),
    )
    return response


@app.on_event("startup")
def on_startup():
    logger.info("learnflow_starting", version=VERSION, database=engine.url.get_backend_name())
    Base.metadata.create_all(bind=engine)
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("learnflow_database_ready")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint"""
    return metrics_endpoint()


for module in (progress, schedule, curriculum):
    app.include_router(module.router)
