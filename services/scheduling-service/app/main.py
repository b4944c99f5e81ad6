import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.errors import MalformedInterval
from shared.log_config import configure_logging
from shared.middleware import RequestLoggingMiddleware

from .routes import router
from .rabbitmq import publisher

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Scheduling Service")
app.add_middleware(RequestLoggingMiddleware)
app.include_router(router)


@app.exception_handler(MalformedInterval)
async def malformed_interval_handler(request: Request, exc: MalformedInterval):
    return JSONResponse(status_code=400, content={"detail": str(exc), "error": "malformed_interval"})


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "scheduling-service",
        "events_enabled": publisher.enabled,
    }


@app.on_event("startup")
async def startup():
    try:
        await publisher.connect()
    except Exception as e:
        logger.warning("[scheduling-service] RabbitMQ connect failed at startup; continuing without events: %s", e)


@app.on_event("shutdown")
async def shutdown():
    try:
        await publisher.close()
    except Exception:
        logger.exception("[scheduling-service] RabbitMQ close failed")
