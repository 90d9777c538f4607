"""
core/runner.py - 조직 전체 인벤토리 실행기

탐색기 → 제한된 워커 풀 → 자격 증명 발급 → 리소스 수집 → 결과 저장 → 상태 기록

    runner = TrampleRunner(config)
    summary = runner.run()

- Organizations 접근 실패(OrgAccessError)만 치명적이며 즉시 중단합니다.
- 계정/리소스 종류 단위 실패는 해당 범위에서만 처리되고 집계됩니다.
- cancel_event가 설정되면 새 계정 제출을 멈추고, 진행 중인 계정은
  현재 리소스 종류 조회를 마친 뒤 멈춥니다. 상태는 재개 가능하게 유지됩니다.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Generator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.auth import CredentialBroker, get_session
from core.exceptions import AssumeRoleError, CorruptStateError
from core.inventory import ResourceCollector, ResourceRecord
from core.org import OrganizationsClient, OrgNode, OrgTreeWalker
from core.output import ResultWriter
from core.parallel import (
    AccountExecutor,
    ErrorCollector,
    ErrorSeverity,
    ParallelConfig,
    TaskResult,
    TokenBucketRateLimiter,
    get_rate_limiter,
)
from core.state import Outcome, RunStateStore

if TYPE_CHECKING:
    import boto3

    from core.config import TrampleConfig

logger = logging.getLogger(__name__)


@dataclass
class AccountReport:
    """계정 하나의 처리 결과"""

    account_id: str
    ou_name: str
    artifacts: list[str] = field(default_factory=list)
    assume_role_failed: bool = False


@dataclass
class RunSummary:
    """실행 요약

    Attributes:
        org_id: Organization ID
        done / denied / failed: (계정, 리소스 종류) 결과별 개수 (상태 파일 기준 누적)
        accounts_processed: 이번 실행에서 처리한 계정 수
        accounts_failed: 역할 전환 실패 등으로 처리하지 못한 계정 ID
        accounts_skipped: 이미 완료되어 건너뛴 계정 수
        listing_failures: 실패한 OU 목록 조회 수
        artifacts_written: 이번 실행에서 저장한 결과 파일 수
        cancelled: 사용자 취소 여부
        duration_seconds: 소요 시간
        state_path: 상태 파일 경로 (재개용)
    """

    org_id: str
    done: int = 0
    denied: int = 0
    failed: int = 0
    accounts_processed: int = 0
    accounts_failed: list[str] = field(default_factory=list)
    accounts_skipped: int = 0
    listing_failures: int = 0
    artifacts_written: int = 0
    cancelled: bool = False
    duration_seconds: float = 0.0
    state_path: str = ""

    @property
    def has_failures(self) -> bool:
        return bool(self.failed or self.accounts_failed or self.listing_failures)


class TrampleRunner:
    """조직 인벤토리 실행 오케스트레이터

    Args:
        config: 실행 설정
        session: 관리 계정 세션 (None이면 config.profile로 생성)
        cancel_event: 외부 취소 이벤트 (None이면 새로 생성)
    """

    def __init__(
        self,
        config: TrampleConfig,
        session: boto3.Session | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.config = config
        self.cancel_event = cancel_event or threading.Event()
        self.errors = ErrorCollector()
        self._session = session
        self._lock = threading.Lock()
        self._artifacts_written = 0

    # =========================================================================
    # 구성 요소 생성
    # =========================================================================

    def _base_session(self) -> boto3.Session:
        if self._session is None:
            self._session = get_session(self.config.profile, self.config.region)
        return self._session

    def _assume_role_limiter(self) -> TokenBucketRateLimiter:
        return TokenBucketRateLimiter(self.config.assume_role_rate)

    def _open_state(self, org_id: str) -> RunStateStore:
        """상태 파일 열기

        --resume 미지정 시 새로 시작하고, 지정했지만 파일이 없으면 빈 상태로 시작합니다.
        손상된 파일은 fresh_on_corrupt일 때만 같은 경로에서 새로 시작합니다.
        """
        config = self.config
        path = config.state_path
        if config.is_resume and not path.exists():
            logger.warning(f"재개할 상태 파일이 없어 새로 시작합니다: {path}")
        try:
            return RunStateStore.load(path, fresh=not config.is_resume, org_id=org_id)
        except CorruptStateError:
            if not config.fresh_on_corrupt:
                raise
            logger.warning(f"상태 파일이 손상되어 새로 시작합니다: {path}")
            return RunStateStore.load(path, fresh=True, org_id=org_id)

    # =========================================================================
    # 실행
    # =========================================================================

    def run(self) -> RunSummary:
        """조직 전체 인벤토리 실행

        Raises:
            OrgAccessError: Organizations 접근 불가 (치명적)
            StateError: 상태 파일을 열 수 없음 (손상/점유)
        """
        config = self.config
        start = time.monotonic()
        session = self._base_session()

        org_client = OrganizationsClient(
            session,
            retry_config=config.retry,
            rate_limiter=get_rate_limiter("organizations"),
            cancel_event=self.cancel_event,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
        )
        org = org_client.describe_organization()
        root = org_client.get_root()

        with self._open_state(org.id) as store:
            broker = CredentialBroker(
                session,
                session_name=config.session_name,
                duration_seconds=config.session_duration,
                partition=config.partition,
                rate_limiter=self._assume_role_limiter(),
                connect_timeout=config.connect_timeout,
                read_timeout=config.read_timeout,
            )
            collector = ResourceCollector(
                store,
                config.resource_kinds,
                retry_config=config.retry,
                cancel_event=self.cancel_event,
                error_collector=self.errors,
                region=config.resolve_region(session.region_name),
                connect_timeout=config.connect_timeout,
                read_timeout=config.read_timeout,
            )
            writer = ResultWriter(config.output_dir)
            walker = OrgTreeWalker(org_client, store, config.resource_kind_names)

            accounts = (node for node in walker.walk(root) if node.is_account)

            def process(account: OrgNode) -> AccountReport:
                return self.process_account(account, org.id, broker, collector, writer)

            executor = AccountExecutor(ParallelConfig(max_workers=config.max_workers), self.cancel_event)
            logger.info(f"계정 처리 시작 (워커 {config.max_workers}개, 리소스 종류: {', '.join(config.resource_kind_names)})")
            result = executor.execute(accounts, process, identify=lambda n: n.id, on_complete=self._on_account_done)

            counts = store.counts()
            reports = result.get_data()
            summary = RunSummary(
                org_id=org.id,
                done=counts[Outcome.DONE],
                denied=counts[Outcome.DENIED],
                failed=counts[Outcome.FAILED],
                accounts_processed=len(reports),
                accounts_failed=sorted(
                    [r.account_id for r in reports if r.assume_role_failed]
                    + [e.identifier for e in result.get_errors()]
                ),
                accounts_skipped=walker.skipped_accounts,
                listing_failures=walker.listing_failures,
                artifacts_written=self._artifacts_written,
                cancelled=self.cancel_event.is_set(),
                duration_seconds=time.monotonic() - start,
                state_path=str(store.path),
            )

        if summary.cancelled:
            logger.warning(f"사용자 취소로 중단되었습니다. 재개: --resume {summary.state_path}")
        logger.info(
            f"완료: DONE {summary.done}, DENIED {summary.denied}, FAILED {summary.failed}, "
            f"파일 {summary.artifacts_written}개 ({summary.duration_seconds:.1f}초)"
        )
        return summary

    def process_account(
        self,
        account: OrgNode,
        org_id: str,
        broker: CredentialBroker,
        collector: ResourceCollector,
        writer: ResultWriter,
    ) -> AccountReport:
        """계정 하나 처리 (워커 스레드)

        역할 전환 실패 시 리소스 종류를 시도하지 않은 상태로 남겨 재개 시 다시 시도합니다.
        """
        report = AccountReport(account_id=account.id, ou_name=account.ou_name)
        logger.info(f"[{account.id}] 리소스 수집 시작 (OU: {account.ou_name})")

        try:
            creds = broker.acquire_with_retry(
                account.id,
                self.config.role_name,
                retry_config=self.config.retry,
                cancel_event=self.cancel_event,
            )
        except AssumeRoleError as e:
            report.assume_role_failed = True
            self.errors.collect(e, account.id, "assume_role", "sts:AssumeRole", severity=ErrorSeverity.WARNING)
            logger.warning(f"[{account.id}] 역할 전환 실패로 계정을 건너뜁니다")
            return report

        with creds:
            records = collector.collect(creds, account.id, account.ou_name, org_id)
            record = next(records, None)
            while record is not None:
                try:
                    path = writer.write(record)
                except OSError as e:
                    # 해당 종류는 FAILED로 기록되고 다음 종류로 진행
                    record = _throw_into(records, e)
                    continue
                report.artifacts.append(str(path))
                with self._lock:
                    self._artifacts_written += 1
                record = next(records, None)

        logger.debug(f"[{account.id}] 임시 자격 증명 폐기")
        return report

    def _on_account_done(self, result: TaskResult[AccountReport]) -> None:
        if not result.success and result.error is not None:
            logger.error(f"[{result.identifier}] 계정 처리 중 예상치 못한 오류: {result.error}")


def _throw_into(records: Generator[ResourceRecord, None, None], error: BaseException) -> ResourceRecord | None:
    """제너레이터에 예외를 전달하고 다음 결과 반환 (끝나면 None)"""
    try:
        return records.throw(error)
    except StopIteration:
        return None
