"""
core/parallel/errors.py - 에러 수집 및 관리

병렬 실행 중 발생하는 계정/리소스 종류 단위 에러를 일관되게 수집합니다.
수집된 에러는 실행 종료 시 요약 보고와 --verbose 상세 목록에 사용됩니다.

주요 구성 요소:
- ErrorSeverity: 에러 심각도 분류
- CollectedError: 수집된 에러 상세 정보
- ErrorCollector: 스레드 세이프 에러 수집기

Example:
    collector = ErrorCollector()

    try:
        payload = fetch()
    except ClientError as e:
        collector.collect(e, account_id, "s3", "list_buckets")

    if collector.has_errors:
        print(collector.get_summary())
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .decorators import categorize_error, get_error_code
from .types import ErrorCategory

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """에러 심각도 분류

    수집된 에러의 심각도를 나타내며, 로깅 레벨을 결정합니다.
    """

    CRITICAL = "critical"  # 실행 전체에 영향
    WARNING = "warning"  # 부분 실패 - 보고하되 계속 진행
    INFO = "info"  # 정보성 (권한 없음 등)
    DEBUG = "debug"


@dataclass
class CollectedError:
    """수집된 에러 상세 정보

    Attributes:
        timestamp: 에러 발생 시각
        account_id: AWS 계정 ID (OU 목록 조회 에러는 부모 ID)
        scope: 범위 (리소스 종류, "assume_role", "listing" 등)
        operation: API 작업 이름 (예: "list_buckets")
        error_code: AWS 에러 코드 (예: "AccessDenied")
        error_message: 에러 메시지
        severity: 에러 심각도
        category: 에러 카테고리 (ErrorCategory)
    """

    timestamp: datetime
    account_id: str
    scope: str
    operation: str
    error_code: str
    error_message: str
    severity: ErrorSeverity
    category: ErrorCategory

    def __str__(self) -> str:
        return f"[{self.severity.value.upper()}] {self.account_id}/{self.scope} - {self.operation}: {self.error_code}"

    def to_dict(self) -> dict[str, str]:
        """딕셔너리로 변환 (로깅/직렬화용)"""
        return {
            "timestamp": self.timestamp.isoformat(),
            "account_id": self.account_id,
            "scope": self.scope,
            "operation": self.operation,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "severity": self.severity.value,
            "category": self.category.value,
        }


class ErrorCollector:
    """스레드 세이프 에러 수집기

    여러 워커 스레드에서 발생하는 에러를 안전하게 수집하고
    심각도별로 분류하여 요약 보고를 제공합니다.
    """

    def __init__(self) -> None:
        self._errors: list[CollectedError] = []
        self._lock = threading.Lock()

    def collect(
        self,
        error: BaseException,
        account_id: str,
        scope: str,
        operation: str,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
    ) -> CollectedError:
        """예외를 수집하고 로깅

        에러 코드에서 카테고리를 자동 분류하며, ACCESS_DENIED는
        심각도를 INFO로 자동 다운그레이드합니다.
        """
        category = categorize_error(error)
        if category == ErrorCategory.ACCESS_DENIED and severity == ErrorSeverity.WARNING:
            severity = ErrorSeverity.INFO

        response = getattr(error, "response", None)
        error_message = str(error)
        if isinstance(response, dict):
            error_message = response.get("Error", {}).get("Message", error_message)

        collected = CollectedError(
            timestamp=datetime.now(),
            account_id=account_id,
            scope=scope,
            operation=operation,
            error_code=get_error_code(error),
            error_message=error_message,
            severity=severity,
            category=category,
        )

        with self._lock:
            self._errors.append(collected)

        log_msg = f"{collected}"
        if severity == ErrorSeverity.CRITICAL:
            logger.error(log_msg)
        elif severity == ErrorSeverity.WARNING:
            logger.warning(log_msg)
        elif severity == ErrorSeverity.INFO:
            logger.info(log_msg)
        else:
            logger.debug(log_msg)

        return collected

    @property
    def errors(self) -> list[CollectedError]:
        """수집된 모든 에러의 복사본 반환"""
        with self._lock:
            return list(self._errors)

    @property
    def has_errors(self) -> bool:
        with self._lock:
            return len(self._errors) > 0

    def get_summary(self) -> str:
        """심각도별 에러 건수를 포함한 요약 문자열 반환

        Returns:
            포맷팅된 요약 문자열 (예: "에러 3건 (info: 1건, warning: 2건)")
        """
        with self._lock:
            if not self._errors:
                return "에러 없음"

            by_severity: dict[str, int] = {}
            for e in self._errors:
                by_severity[e.severity.value] = by_severity.get(e.severity.value, 0) + 1

            parts = [f"{k}: {v}건" for k, v in sorted(by_severity.items())]
            return f"에러 {len(self._errors)}건 ({', '.join(parts)})"

    def get_by_account(self) -> dict[str, list[CollectedError]]:
        """계정별로 에러를 그룹핑하여 반환"""
        with self._lock:
            result: dict[str, list[CollectedError]] = {}
            for e in self._errors:
                result.setdefault(e.account_id, []).append(e)
            return result

    def clear(self) -> None:
        with self._lock:
            self._errors.clear()
