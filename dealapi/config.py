from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="dealapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "NepQue Deals API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # Lambda 등에서 JSON 로그 사용
    ALLOWED_ORIGINS: list[str] = ["*"]

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = "postgres"
    POSTGRES_SCHEMA: str = "public"

    # 지정하면 POSTGRES_* 대신 사용 (로컬 sqlite 등)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Identity provider (Firebase)
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_CERTS_URL: str = (
        "https://www.googleapis.com/robot/v1/metadata/x509/"
        "securetoken@system.gserviceaccount.com"
    )
    FIREBASE_CERTS_TIMEOUT_SECONDS: float = 10.0

    # Cache (Redis)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 300

    # Timezone
    TIMEZONE: str = "Asia/Kathmandu"

    # Point Management
    SIGNUP_BONUS_POINTS: int = 10  # 신규 가입 보너스 포인트
    CHECK_IN_POINTS: int = 5  # 일일 출석 포인트
    STREAK_BONUS_POINTS: int = 10  # 연속 출석 7일차 포인트
    STREAK_CYCLE_DAYS: int = 7
    CHECK_IN_INTERVAL_HOURS: int = 24  # 다음 출석까지 대기 시간
    STREAK_RESET_HOURS: int = 48  # 이 시간 이상 출석이 없으면 연속 기록 초기화
    COUPON_APPROVAL_POINTS: int = 5  # 쿠폰 제보 승인 포인트
    MIN_WITHDRAWAL_POINTS: int = 1000  # 최소 출금 포인트


settings = Settings()
