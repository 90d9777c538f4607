"""
core/auth/broker.py - 계정별 임시 자격 증명 발급

대상 계정의 역할로 sts:AssumeRole을 호출하여 계정 하나에 한정된
ScopedCredentials를 발급합니다.

- 계정마다 신뢰 경계가 다르므로 자격 증명을 계정 간에 캐싱하지 않습니다.
- AssumeRole 호출은 모든 워커가 공유하는 토큰 버킷으로 전역 속도 제한됩니다.
- 쓰로틀링/네트워크 오류는 acquire_with_retry()에서 지수 백오프로 재시도합니다.

Example:
    broker = CredentialBroker(base_session, rate_limiter=get_rate_limiter("sts"))
    with broker.acquire_with_retry("111111111111", "OrganizationAccountAccessRole") as creds:
        session = creds.create_session()
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import AssumeRoleError
from core.parallel import RetryConfig, TokenBucketRateLimiter, call_with_retry, categorize_error, get_client, get_error_code
from core.parallel.types import ErrorCategory

from .types import ScopedCredentials

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "TrampleSession"
DEFAULT_DURATION_SECONDS = 3600

# AssumeRole에서 재시도할 카테고리
_RETRYABLE_CATEGORIES = {ErrorCategory.THROTTLING, ErrorCategory.NETWORK, ErrorCategory.TIMEOUT}


def build_role_arn(account_id: str, role_name: str, partition: str = "aws") -> str:
    """역할 ARN 생성"""
    return f"arn:{partition}:iam::{account_id}:role/{role_name}"


def _is_retryable_assume_error(error: BaseException) -> bool:
    return isinstance(error, AssumeRoleError) and ErrorCategory(error.category) in _RETRYABLE_CATEGORIES


class CredentialBroker:
    """계정 ID + 역할 이름 → ScopedCredentials 교환

    Attributes:
        session_name: RoleSessionName
        duration_seconds: 자격 증명 유효 시간 (초)
        partition: AWS 파티션 (aws, aws-cn, aws-us-gov)
    """

    def __init__(
        self,
        session: boto3.Session,
        session_name: str = DEFAULT_SESSION_NAME,
        duration_seconds: int = DEFAULT_DURATION_SECONDS,
        partition: str = "aws",
        rate_limiter: TokenBucketRateLimiter | None = None,
        connect_timeout: int = 10,
        read_timeout: int = 30,
    ):
        self.session_name = session_name
        self.duration_seconds = duration_seconds
        self.partition = partition
        self._rate_limiter = rate_limiter
        # 저수준 client는 스레드 간 공유 가능
        self._sts = get_client(
            session,
            "sts",
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
        )

    def acquire(self, account_id: str, role_name: str) -> ScopedCredentials:
        """단일 AssumeRole 호출

        Raises:
            AssumeRoleError: 역할 전환 실패 (권한 없음, 역할 없음, 쓰로틀링 등)
        """
        if self._rate_limiter is not None and not self._rate_limiter.acquire():
            raise AssumeRoleError(
                account_id,
                role_name,
                category=ErrorCategory.THROTTLING.value,
                error_code="RateLimitTimeout",
            )

        role_arn = build_role_arn(account_id, role_name, self.partition)
        logger.debug(f"[{account_id}] 역할 전환 시도: {role_arn}")

        try:
            response = self._sts.assume_role(
                RoleArn=role_arn,
                RoleSessionName=self.session_name,
                DurationSeconds=self.duration_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            raise AssumeRoleError(
                account_id,
                role_name,
                category=categorize_error(e).value,
                error_code=get_error_code(e),
                cause=e,
            ) from e

        creds = ScopedCredentials.from_sts_response(account_id, response)
        logger.debug(f"[{account_id}] 역할 전환 성공 (만료: {creds.expires_at.isoformat()})")
        return creds

    def acquire_with_retry(
        self,
        account_id: str,
        role_name: str,
        retry_config: RetryConfig | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ScopedCredentials:
        """쓰로틀링/네트워크 오류 시 지수 백오프로 재시도하는 acquire()

        Raises:
            AssumeRoleError: 재시도 불가 오류이거나 재시도 소진 시
        """
        return call_with_retry(
            lambda: self.acquire(account_id, role_name),
            retry_config,
            label=f"{account_id}/assume_role",
            cancel_event=cancel_event,
            retryable=_is_retryable_assume_error,
        )
