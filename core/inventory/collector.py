"""
core/inventory/collector.py - 계정 단위 리소스 수집기

계정 한정 자격 증명으로 설정된 리소스 종류를 차례로 조회합니다.

리소스 종류별 결과:
    - 이미 완료(DONE/DENIED)     → API 호출 없이 건너뜀
    - 성공 + 결과 있음            → ResourceRecord를 내보내고, 소비자가 재개하면 DONE 기록
    - 성공 + 결과 없음            → DONE 기록, 내보내지 않음
    - 권한 없음                   → DENIED 기록
    - 쓰로틀링/네트워크/타임아웃  → 재시도, 소진 시 FAILED 기록
    - 그 외 오류                  → FAILED 기록

DONE은 소비자가 결과 파일을 저장한 뒤 제너레이터를 재개해야 기록되므로
중단되더라도 "기록은 있는데 파일은 없는" 상태가 생기지 않습니다.
저장에 실패한 소비자는 generator.throw(OSError)로 알리며, 해당 종류는 FAILED로 기록됩니다.

Example:
    collector = ResourceCollector(store, [ResourceKind.S3, ResourceKind.EC2])
    for record in collector.collect(creds, "111111111111", "Prod", "o-abc"):
        writer.write(record)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import ResourceQueryError, is_access_denied
from core.parallel import ErrorCollector, ErrorSeverity, RetryConfig, call_with_retry, get_error_code
from core.state import Outcome

from .services import KIND_FETCHERS, Fetcher, has_resources
from .types import ALL_RESOURCE_KINDS, ResourceKind, ResourceRecord

if TYPE_CHECKING:
    from core.auth.types import ScopedCredentials
    from core.state import RunStateStore

logger = logging.getLogger(__name__)


class ResourceCollector:
    """리소스 종류별 조회 + 실행 상태 기록

    여러 워커 스레드가 하나의 인스턴스를 공유할 수 있습니다.
    (계정별 상태는 collect() 호출 안에만 존재)
    """

    def __init__(
        self,
        state: RunStateStore,
        resource_kinds: Sequence[ResourceKind] = ALL_RESOURCE_KINDS,
        retry_config: RetryConfig | None = None,
        cancel_event: threading.Event | None = None,
        error_collector: ErrorCollector | None = None,
        region: str | None = None,
        connect_timeout: int = 10,
        read_timeout: int = 30,
        fetchers: Mapping[ResourceKind, tuple[Fetcher, str]] | None = None,
    ):
        self._state = state
        self.resource_kinds = tuple(resource_kinds)
        self._retry_config = retry_config
        self._cancel_event = cancel_event or threading.Event()
        self._errors = error_collector
        self._region = region
        self._client_kwargs = {"connect_timeout": connect_timeout, "read_timeout": read_timeout}
        self._fetchers = dict(fetchers or KIND_FETCHERS)

    def collect(
        self,
        creds: ScopedCredentials,
        account_id: str,
        ou_name: str,
        org_id: str,
    ) -> Generator[ResourceRecord, None, None]:
        """계정의 리소스 종류를 순서대로 조회

        Yields:
            결과가 있는 리소스 종류의 ResourceRecord
        """
        session = None

        for kind in self.resource_kinds:
            if self._cancel_event.is_set():
                logger.info(f"[{account_id}] 취소 요청으로 남은 리소스 종류를 건너뜁니다")
                return

            if self._state.is_complete(account_id, kind.value):
                logger.debug(f"[{account_id}/{kind.value}] 이미 완료, 건너뜀")
                continue

            if creds.is_expired():
                logger.warning(f"[{account_id}] 자격 증명이 만료되어 남은 리소스 종류를 건너뜁니다")
                return

            if session is None:
                session = creds.create_session(self._region)

            outcome, payload = self._fetch(session, account_id, kind)

            if outcome is Outcome.DONE and payload is not None and has_resources(payload):
                try:
                    yield ResourceRecord(
                        account_id=account_id,
                        ou_name=ou_name,
                        org_id=org_id,
                        resource_kind=kind,
                        payload=payload,
                    )
                except OSError as e:
                    # 소비자가 결과 저장 실패를 throw()로 전달
                    logger.warning(f"[{account_id}/{kind.value}] 결과 저장 실패: {e}")
                    outcome = Outcome.FAILED
            elif outcome is Outcome.DONE:
                logger.info(f"[{account_id}/{kind.value}] 리소스 없음")

            self._state.record(account_id, kind.value, outcome)

    def _fetch(self, session: Any, account_id: str, kind: ResourceKind) -> tuple[Outcome, dict[str, Any] | None]:
        fetcher, operation = self._fetchers[kind]
        label = f"{account_id}/{kind.value}"
        logger.debug(f"[{label}] 조회 시작: {operation}")

        try:
            payload = call_with_retry(
                lambda: fetcher(session, region=self._region, **self._client_kwargs),
                self._retry_config,
                label=label,
                cancel_event=self._cancel_event,
            )
        except ClientError as e:
            error = ResourceQueryError.from_client_error(account_id, kind.value, operation, e)
            return self._handle_failure(account_id, kind, operation, e, error), None
        except BotoCoreError as e:
            error = ResourceQueryError(account_id, kind.value, operation, error_code=get_error_code(e), cause=e)
            return self._handle_failure(account_id, kind, operation, e, error), None
        except Exception as e:
            logger.exception(f"[{label}] 예상치 못한 오류")
            error = ResourceQueryError(account_id, kind.value, operation, error_code=type(e).__name__, cause=e)
            return self._handle_failure(account_id, kind, operation, e, error), None

        return Outcome.DONE, payload

    def _handle_failure(
        self,
        account_id: str,
        kind: ResourceKind,
        operation: str,
        cause: Exception,
        error: ResourceQueryError,
    ) -> Outcome:
        if is_access_denied(cause):
            outcome, severity = Outcome.DENIED, ErrorSeverity.INFO
        else:
            outcome, severity = Outcome.FAILED, ErrorSeverity.WARNING

        # ErrorCollector가 있으면 수집 시 로깅됨
        if self._errors is not None:
            self._errors.collect(cause, account_id, kind.value, operation, severity=severity)
        elif outcome is Outcome.DENIED:
            logger.info(f"[{account_id}/{kind.value}] 권한 없음 ({error.error_code})")
        else:
            logger.warning(f"{error}")
        return outcome
