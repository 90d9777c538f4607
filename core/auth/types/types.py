# core/auth/types/types.py
"""
core/auth/types/types.py - 인증 모듈의 핵심 타입 정의

포함 항목:
    - ScopedCredentials: 계정 하나에 한정된 임시 자격 증명
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)

# 만료 직전 자격 증명 사용을 피하기 위한 여유 시간
EXPIRY_SKEW = timedelta(seconds=60)


def _parse_expiration(value: Any) -> datetime:
    """STS Expiration 값을 timezone-aware datetime으로 변환"""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"알 수 없는 만료 시간 형식: {value!r}")


# =============================================================================
# Scoped Credentials
# =============================================================================


@dataclass
class ScopedCredentials:
    """계정 하나에 한정된 임시 자격 증명

    계정 처리 작업 하나가 독점 소유하며, 파일이나 환경 변수로 내보내지 않습니다.
    작업 종료 시 clear()로 값을 지우며, 컨텍스트 매니저로도 사용할 수 있습니다.

    Attributes:
        access_key: 임시 액세스 키 ID
        secret_key: 임시 시크릿 키
        session_token: 세션 토큰
        expires_at: 만료 시각 (UTC)
        account_id: 자격 증명이 유효한 계정 ID

    Example:
        with broker.acquire(account_id, role_name) as creds:
            session = creds.create_session(region)
            ...
        # 블록을 벗어나면 자격 증명 값이 지워짐
    """

    access_key: str = field(repr=False)
    secret_key: str = field(repr=False)
    session_token: str = field(repr=False)
    expires_at: datetime
    account_id: str
    _cleared: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def from_sts_response(cls, account_id: str, response: dict[str, Any]) -> ScopedCredentials:
        """sts:AssumeRole 응답에서 생성"""
        creds = response["Credentials"]
        return cls(
            access_key=creds["AccessKeyId"],
            secret_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
            expires_at=_parse_expiration(creds["Expiration"]),
            account_id=account_id,
        )

    @property
    def is_cleared(self) -> bool:
        return self._cleared

    def is_expired(self, now: datetime | None = None) -> bool:
        """만료 여부 (EXPIRY_SKEW 여유 포함)"""
        current = now or datetime.now(timezone.utc)
        return current >= self.expires_at - EXPIRY_SKEW

    def create_session(self, region: str | None = None) -> boto3.Session:
        """이 자격 증명만 사용하는 작업 전용 boto3 Session 생성

        Raises:
            RuntimeError: 이미 지워졌거나 만료된 자격 증명인 경우
        """
        import boto3

        if self._cleared:
            raise RuntimeError(f"이미 폐기된 자격 증명입니다: {self.account_id}")
        if self.is_expired():
            raise RuntimeError(f"만료된 자격 증명입니다: {self.account_id}")

        return boto3.Session(
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            aws_session_token=self.session_token,
            region_name=region,
        )

    def clear(self) -> None:
        """자격 증명 값 폐기"""
        self.access_key = ""
        self.secret_key = ""
        self.session_token = ""
        self._cleared = True
        logger.debug(f"[{self.account_id}] 임시 자격 증명 폐기")

    def __enter__(self) -> ScopedCredentials:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.clear()
