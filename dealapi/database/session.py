import logging
from contextlib import contextmanager

from dealapi.database.connection import SessionLocal

logger = logging.getLogger(__name__)


def get_db():
    """요청 단위 세션 - 커밋은 서비스 계층에서 수행

    서비스가 처리하지 못한 예외로 트랜잭션이 열린 채 끝나면 롤백합니다.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            logger.warning("Rolling back request session after unhandled error")
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context():
    """스크립트용 세션 (시드, 관리자 지정) - 블록이 끝나면 커밋, 예외 시 롤백"""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
