import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.errors import AccessDenied, ImpersonationStateInconsistent
from shared.log_config import configure_logging
from shared.middleware import RequestLoggingMiddleware

from .routes import router
from .rabbitmq import publisher

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Access Service")
app.add_middleware(RequestLoggingMiddleware)
app.include_router(router)


@app.exception_handler(AccessDenied)
async def access_denied_handler(request: Request, exc: AccessDenied):
    return JSONResponse(status_code=403, content={"detail": str(exc) or "Access denied"})


@app.exception_handler(ImpersonationStateInconsistent)
async def impersonation_state_handler(request: Request, exc: ImpersonationStateInconsistent):
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "error": "impersonation_state_inconsistent",
            "org_id": exc.org_id,
        },
    )


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "access-service",
        "events_enabled": publisher.enabled,
    }


@app.on_event("startup")
async def startup():
    try:
        await publisher.connect()
    except Exception as e:
        logger.warning("[access-service] RabbitMQ connect failed at startup; continuing without events: %s", e)


@app.on_event("shutdown")
async def shutdown():
    try:
        await publisher.close()
    except Exception:
        logger.exception("[access-service] RabbitMQ close failed")
