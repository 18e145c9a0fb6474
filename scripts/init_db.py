import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text

from dealapi.config import settings
from dealapi.database.connection import engine
from dealapi.models.base import Base

# 메타데이터에 테이블 등록
from dealapi.models import (  # noqa: F401
    catalog,
    check_in,
    points,
    site_setting,
    submission,
    user,
    withdrawal,
)


def init_db():
    """데이터베이스 초기화"""
    try:
        # 스키마 생성 (PostgreSQL)
        if engine.dialect.name == "postgresql":
            with engine.connect() as conn:
                conn.execute(
                    text(f"CREATE SCHEMA IF NOT EXISTS {settings.POSTGRES_SCHEMA}")
                )
                conn.commit()

        # 테이블 생성
        Base.metadata.create_all(bind=engine)
        print(
            f"Database initialized successfully ({engine.dialect.name}, schema: {settings.POSTGRES_SCHEMA})"
        )

    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
