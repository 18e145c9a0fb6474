import logging

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from dealapi.containers import Container
from dealapi.database.session import get_db
from dealapi.schemas.health import HealthCheckResponse
from dealapi.services.cache_service import QueryCache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
@inject
async def health_check(
    db: Session = Depends(get_db),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> HealthCheckResponse:
    """Health check endpoint.

    캐시는 선택 구성요소이므로 연결 실패 시에도 status 는 healthy 로 유지합니다.
    """
    response = HealthCheckResponse()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        response.status = "unhealthy"
        response.database = "error"
        response.error = str(e)

    if not cache.enabled:
        response.cache = "disabled"
    elif not await cache.ping():
        response.cache = "unavailable"

    return response
