"""
core/parallel/decorators.py - AWS API 에러 분류 및 재시도 유틸리티

AWS API 호출의 에러 분류, 재시도 가능 여부 판단,
지수 백오프 재시도 설정을 제공합니다.

주요 구성 요소:
- RetryConfig: 재시도 설정 (지수 백오프 + 지터)
- categorize_error: 예외를 ErrorCategory로 분류
- get_error_code: 예외에서 에러 코드 추출
- is_retryable: 재시도 가능 여부 판단
- call_with_retry / with_retry: 재시도 실행 헬퍼 및 데코레이터
"""

from __future__ import annotations

import functools
import logging
import random
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from botocore.exceptions import (
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from core.exceptions import is_access_denied, is_not_found, is_throttling

from .types import ErrorCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """재시도 설정

    Attributes:
        max_retries: 최대 재시도 횟수 (0이면 재시도 안함, 총 시도 = max_retries + 1)
        base_delay: 기본 대기 시간 (초)
        max_delay: 최대 대기 시간 (초)
        exponential_base: 지수 백오프 밑수
        jitter: 지터 사용 여부 (대기 시간에 랜덤성 추가)
    """

    max_retries: int = 2
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True

    @property
    def max_attempts(self) -> int:
        """총 시도 횟수"""
        return self.max_retries + 1

    def get_delay(self, attempt: int) -> float:
        """재시도 대기 시간 계산

        Exponential backoff with optional jitter.

        Args:
            attempt: 현재 시도 횟수 (0부터 시작)

        Returns:
            대기 시간 (초)
        """
        delay = self.base_delay * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            # Full jitter: [0, delay]
            delay = random.uniform(0, delay)

        return delay


# 기본 재시도 설정 (총 3회 시도)
DEFAULT_RETRY_CONFIG = RetryConfig()

# 재시도 가능한 AWS 에러 코드
RETRYABLE_ERROR_CODES: set[str] = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RateExceeded",
    "ServiceUnavailable",
    "ServiceUnavailableException",
    "InternalError",
    "InternalServiceError",
    "InternalFailure",
    "RequestTimeout",
    "RequestTimeoutException",
    "SlowDown",
}

_TIMEOUT_ERRORS = (ConnectTimeoutError, ReadTimeoutError, TimeoutError)
_NETWORK_ERRORS = (EndpointConnectionError, ConnectionClosedError, ConnectionError)


def categorize_error(error: BaseException) -> ErrorCategory:
    """예외 객체를 분석하여 ErrorCategory로 분류

    ClientError의 경우 response에서 에러 코드를 추출하고,
    네트워크/타임아웃 에러는 타입으로 분류합니다.

    Args:
        error: 분류할 예외

    Returns:
        에러 카테고리
    """
    if isinstance(error, Exception):
        if is_throttling(error):
            return ErrorCategory.THROTTLING
        if is_access_denied(error):
            return ErrorCategory.ACCESS_DENIED
        if is_not_found(error):
            return ErrorCategory.NOT_FOUND

    response = getattr(error, "response", None)
    if isinstance(response, dict):
        error_code = response.get("Error", {}).get("Code", "")

        if "Timeout" in error_code:
            return ErrorCategory.TIMEOUT
        if error_code in ("ExpiredToken", "ExpiredTokenException"):
            return ErrorCategory.EXPIRED_TOKEN
        if error_code in RETRYABLE_ERROR_CODES:
            return ErrorCategory.SERVICE_ERROR

    # 타임아웃이 네트워크보다 먼저 (ConnectTimeoutError는 양쪽에 해당)
    if isinstance(error, _TIMEOUT_ERRORS):
        return ErrorCategory.TIMEOUT
    if isinstance(error, _NETWORK_ERRORS):
        return ErrorCategory.NETWORK

    return ErrorCategory.UNKNOWN


def get_error_code(error: BaseException) -> str:
    """예외 객체에서 에러 코드 문자열 추출

    ClientError의 경우 response에서 Code를 추출하고,
    그 외에는 예외 클래스명을 반환합니다.
    """
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        code: str = response.get("Error", {}).get("Code", "Unknown")
        return code
    error_code = getattr(error, "error_code", None)
    if isinstance(error_code, str) and error_code:
        return error_code
    return error.__class__.__name__


def is_retryable(error: BaseException) -> bool:
    """재시도 가능한 에러인지 확인

    RETRYABLE_ERROR_CODES에 포함된 에러 코드이거나
    네트워크/타임아웃 에러인 경우 True를 반환합니다.
    """
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        error_code = response.get("Error", {}).get("Code", "")
        return error_code in RETRYABLE_ERROR_CODES

    return categorize_error(error) in (
        ErrorCategory.THROTTLING,
        ErrorCategory.NETWORK,
        ErrorCategory.TIMEOUT,
    )


def call_with_retry(
    func: Callable[[], T],
    retry_config: RetryConfig | None = None,
    *,
    label: str = "",
    cancel_event: threading.Event | None = None,
    retryable: Callable[[BaseException], bool] = is_retryable,
) -> T:
    """지수 백오프 재시도를 적용하여 함수 실행

    재시도 불가능한 에러나 재시도 소진 시 마지막 예외를 그대로 다시 발생시킵니다.
    cancel_event가 설정되면 대기 중인 재시도를 포기합니다.

    Args:
        func: 실행할 함수 (인자 없음)
        retry_config: 재시도 설정 (None이면 기본값)
        label: 로그용 식별자 (예: "111111111111/s3")
        cancel_event: 실행 취소 이벤트
        retryable: 재시도 여부 판단 함수

    Returns:
        함수 실행 결과
    """
    config = retry_config or DEFAULT_RETRY_CONFIG

    for attempt in range(config.max_retries + 1):
        try:
            return func()
        except Exception as e:
            if not retryable(e) or attempt >= config.max_retries:
                raise

            delay = config.get_delay(attempt)
            logger.debug(
                f"[{label}] 시도 {attempt + 1}/{config.max_attempts} 실패 ({get_error_code(e)}), {delay:.2f}초 후 재시도..."
            )
            if cancel_event is None:
                time.sleep(delay)
            elif cancel_event.wait(delay):
                raise

    # range가 비어 있을 수 없으므로 도달하지 않음
    raise RuntimeError("call_with_retry: 재시도 루프가 비정상 종료되었습니다")


def with_retry(
    retry_config: RetryConfig | None = None,
    label: str = "",
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """재시도 데코레이터

    Example:
        @with_retry(RetryConfig(max_retries=2, base_delay=0.5))
        def list_roots(client):
            return client.list_roots()["Roots"]
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            return call_with_retry(
                lambda: func(*args, **kwargs),
                retry_config,
                label=label or func.__name__,
            )

        return wrapper

    return decorator
