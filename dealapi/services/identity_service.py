"""
Firebase ID 토큰 검증 서비스

클라이언트는 Firebase Authentication 으로 로그인한 뒤 ID 토큰을 Bearer 토큰으로
전달합니다. 이 서비스는 Google 공개 인증서(x509)로 RS256 서명을 검증하고
aud/iss 클레임을 확인한 뒤 사용자 식별 정보(uid, email)를 반환합니다.
"""

import logging
import re
import threading
import time
from typing import Dict, Optional

import httpx
from jose import ExpiredSignatureError, JWTError, jwt

from dealapi.config import Settings
from dealapi.core.exceptions import AuthenticationError, ServiceUnavailableError
from dealapi.schemas.auth import TokenClaims

logger = logging.getLogger(__name__)

_MAX_AGE_RE = re.compile(r"max-age=(\d+)")
_DEFAULT_CERT_TTL_SECONDS = 3600


class FirebaseTokenVerifier:
    def __init__(self, settings: Settings):
        self._settings = settings
        self._certs: Dict[str, str] = {}
        self._certs_expire_at: float = 0.0
        self._lock = threading.Lock()

    @property
    def issuer(self) -> str:
        return f"https://securetoken.google.com/{self._settings.FIREBASE_PROJECT_ID}"

    def _fetch_certs(self) -> Dict[str, str]:
        """공개 인증서 조회 - Cache-Control max-age 동안 재사용"""
        try:
            response = httpx.get(
                self._settings.FIREBASE_CERTS_URL,
                timeout=self._settings.FIREBASE_CERTS_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch Firebase certificates: {e}")
            raise ServiceUnavailableError("Identity provider unavailable")

        match = _MAX_AGE_RE.search(response.headers.get("cache-control", ""))
        ttl = int(match.group(1)) if match else _DEFAULT_CERT_TTL_SECONDS
        self._certs_expire_at = time.time() + ttl
        return response.json()

    def _get_certs(self) -> Dict[str, str]:
        with self._lock:
            if not self._certs or time.time() >= self._certs_expire_at:
                self._certs = self._fetch_certs()
            return self._certs

    def verify(self, token: str) -> TokenClaims:
        """ID 토큰을 검증하고 클레임을 반환

        Raises:
            AuthenticationError: 서명/만료/aud/iss 검증 실패
            ServiceUnavailableError: 인증서 조회 실패
        """
        if not self._settings.FIREBASE_PROJECT_ID:
            logger.error("FIREBASE_PROJECT_ID is not configured")
            raise ServiceUnavailableError("Identity provider is not configured")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            raise AuthenticationError("Malformed token")

        kid: Optional[str] = header.get("kid")
        if header.get("alg") != "RS256" or not kid:
            raise AuthenticationError("Invalid token header")

        certificate = self._get_certs().get(kid)
        if certificate is None:
            raise AuthenticationError("Unknown token signing key")

        try:
            payload = jwt.decode(
                token,
                certificate,
                algorithms=["RS256"],
                audience=self._settings.FIREBASE_PROJECT_ID,
                issuer=self.issuer,
                options={"verify_at_hash": False},
            )
        except ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except JWTError as e:
            logger.warning(f"Token verification failed: {e}")
            raise AuthenticationError("Invalid or expired token")

        uid = payload.get("sub") or payload.get("user_id")
        if not uid:
            raise AuthenticationError("Token has no subject")

        return TokenClaims(
            uid=uid,
            email=payload.get("email"),
            name=payload.get("name"),
            email_verified=bool(payload.get("email_verified", False)),
        )
