import logging
import uuid

from fastapi import FastAPI, Request

from app.api.payments import router as payments_router
from app.api.settings import router as settings_router
from app.errors import register_error_handlers
from app.logging import configure_logging

app = FastAPI(title="estate_payments API")
logger = logging.getLogger(__name__)

configure_logging()
register_error_handlers(app)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request.state.request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    response = await call_next(request)
    response.headers["x-request-id"] = request.state.request_id
    return response


def _include_api_router(router, dependencies=None):
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(payments_router)
_include_api_router(settings_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
