import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from dealapi import containers
from dealapi.config import settings
from dealapi.core.exception_handlers import register_exception_handlers
from dealapi.core.logging_middleware import LoggingMiddleware
from dealapi.logging_config import setup_logging
from dealapi.routers import (
    admin_router,
    catalog_router,
    health_router,
    submission_router,
    user_router,
    withdrawal_router,
)

load_dotenv("dealapi/.env")
setup_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
logger = logging.getLogger("dealapi")

container = containers.Container()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.APP_NAME} starting ({settings.ENVIRONMENT})")
    yield
    await container.query_cache().close()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.container = container  # type: ignore

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)


@app.get("/")
def hello() -> dict:
    return {"message": settings.APP_NAME}


app.include_router(health_router.router, prefix=settings.API_V1_STR)
app.include_router(user_router.router, prefix=settings.API_V1_STR)
app.include_router(withdrawal_router.router, prefix=settings.API_V1_STR)
app.include_router(admin_router.router, prefix=settings.API_V1_STR)
app.include_router(catalog_router.router, prefix=settings.API_V1_STR)
app.include_router(submission_router.router, prefix=settings.API_V1_STR)

handler = Mangum(app)
