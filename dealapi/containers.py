from dependency_injector import containers, providers

from dealapi.config import Settings
from dealapi.services.cache_service import QueryCache
from dealapi.services.identity_service import FirebaseTokenVerifier


class Container(containers.DeclarativeContainer):
    """Application container - 프로세스 단위 싱글톤

    DB 세션에 묶인 서비스는 요청마다 deps.py 에서 생성합니다.
    """

    wiring_config = containers.WiringConfiguration(
        modules=[
            "dealapi.core.auth_middleware",
            "dealapi.routers.health_router",
            "dealapi.routers.user_router",
            "dealapi.routers.withdrawal_router",
            "dealapi.routers.admin_router",
        ],
    )

    config = providers.Singleton(Settings)
    token_verifier = providers.Singleton(FirebaseTokenVerifier, settings=config)
    query_cache = providers.Singleton(QueryCache, settings=config)
