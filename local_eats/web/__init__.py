"""
Главный модуль FastAPI приложения.

Содержит инициализацию приложения, регистрацию роутеров и перевод ошибок
жизненного цикла заказа в HTTP-ответы.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from local_eats.dependencies import lifespan
from local_eats.services.errors import LifecycleError

from .order_api import router as order_router
from .cook_api import router as cook_router
from .delivery_api import router as delivery_router
from .wallet_api import router as wallet_router
from .referral_api import router as referral_router

logger = logging.getLogger(__name__)

app = FastAPI(lifespan=lifespan)

app.include_router(order_router)
app.include_router(cook_router)
app.include_router(delivery_router)
app.include_router(wallet_router)
app.include_router(referral_router)


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, "field": exc.field},
    )


@app.get("/")
async def root():
    """Корневой endpoint для проверки работоспособности сервиса"""
    return {"message": "Local Eats API", "status": "running"}
