import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .api import health
from .api.routes import admin, orders, push, restaurants
from .config import settings
from .exceptions import OrderFlowError
from .logging_config import setup_logging

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Bazaar Food")

# Подключаем роуты
app.include_router(health.router)
app.include_router(restaurants.router)
app.include_router(orders.router)
app.include_router(push.router)
app.include_router(admin.router)


@app.exception_handler(OrderFlowError)
async def order_flow_error_handler(request: Request, exc: OrderFlowError):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc), "code": exc.code})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid payload", "code": "InvalidPayload", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Storage error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"error": "Database unavailable", "code": "StorageUnavailable"})


@app.on_event("startup")
async def on_startup():
    logger.info("Application started")


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Application stopped")
