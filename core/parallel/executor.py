"""
core/parallel/executor.py - 계정 단위 병렬 실행기

조직 탐색기가 지연 생성하는 계정 목록을 제한된 워커 풀에서 병렬 처리합니다.
ThreadPoolExecutor 기반이며, 제출 대기열에 상한을 두어 (backpressure)
넓은 조직에서도 대기 작업이 무한정 쌓이지 않습니다.

주요 구성 요소:
- ParallelConfig: 병렬 실행 설정 (워커 수, 제출 상한)
- AccountExecutor: 취소 가능한 계정 병렬 실행기

취소:
    cancel_event가 설정되면 새 작업 제출을 멈추고 아직 시작하지 않은 작업을
    취소합니다. 실행 중인 작업은 스스로 cancel_event를 확인하여 현재 호출을
    마친 뒤 종료해야 합니다. Ctrl+C(KeyboardInterrupt)도 같은 경로로 처리됩니다.

Example:
    executor = AccountExecutor(ParallelConfig(max_workers=10))
    result = executor.execute(walker.iter_accounts(root_id), process_account, identify=lambda n: n.id)
    print(f"성공: {result.success_count}, 실패: {result.error_count}")
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TypeVar

from .decorators import categorize_error, get_error_code
from .types import ParallelExecutionResult, TaskError, TaskResult

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# 슬롯 대기 중 취소 여부를 확인하는 주기 (초)
_SLOT_POLL_INTERVAL = 0.2


def _clear_exception_chain(e: BaseException) -> None:
    """traceback + chained exception 메모리 누수 방지"""
    e.__traceback__ = None
    if e.__context__ is not None:
        e.__context__.__traceback__ = None
    if e.__cause__ is not None:
        e.__cause__.__traceback__ = None


@dataclass
class ParallelConfig:
    """병렬 실행 설정

    Attributes:
        max_workers: 최대 동시 스레드 수 (1~100)
        max_pending: 동시에 제출 가능한 최대 작업 수 (None이면 max_workers * 2)
    """

    max_workers: int = 10
    max_pending: int | None = None

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_workers > 100:
            self.max_workers = 100
        if self.max_pending is None or self.max_pending < self.max_workers:
            self.max_pending = self.max_workers * 2


class AccountExecutor:
    """취소 가능한 계정 병렬 실행기

    특징:
    - ThreadPoolExecutor 기반 병렬 처리
    - 입력 이터러블을 지연 소비 (탐색과 처리를 겹쳐서 진행)
    - 제출 상한으로 메모리 사용량 제한
    - 실행 단위 취소 이벤트
    """

    def __init__(
        self,
        config: ParallelConfig | None = None,
        cancel_event: threading.Event | None = None,
    ):
        """초기화

        Args:
            config: 병렬 실행 설정 (None이면 기본값)
            cancel_event: 실행 취소 이벤트 (None이면 새로 생성)
        """
        self.config = config or ParallelConfig()
        self.cancel_event = cancel_event or threading.Event()

    def execute(
        self,
        items: Iterable[T],
        func: Callable[[T], R],
        identify: Callable[[T], str] = str,
        scope: str = "account",
        on_complete: Callable[[TaskResult[R]], None] | None = None,
    ) -> ParallelExecutionResult[R]:
        """items의 각 항목에 func를 병렬 실행

        Args:
            items: 처리할 항목 (지연 생성 가능)
            func: 항목 하나를 처리하는 함수
            identify: 항목 → 식별자 (로그/결과용)
            scope: 결과에 기록할 범위 이름
            on_complete: 작업 완료 시 호출되는 콜백 (워커 스레드에서 호출)

        Returns:
            ParallelExecutionResult[R]: 실행된 작업들의 결과
        """
        assert self.config.max_pending is not None
        slots = threading.BoundedSemaphore(self.config.max_pending)
        futures: dict[Future[TaskResult[R]], str] = {}
        start_time = time.monotonic()

        logger.debug(f"병렬 실행 시작: max_workers={self.config.max_workers}, max_pending={self.config.max_pending}")

        executor = ThreadPoolExecutor(max_workers=self.config.max_workers, thread_name_prefix="trample")
        try:
            for item in items:
                if not self._acquire_slot(slots):
                    break
                identifier = identify(item)
                future = executor.submit(self._execute_single, func, item, identifier, scope, on_complete)
                future.add_done_callback(lambda _f: slots.release())
                futures[future] = identifier
        except KeyboardInterrupt:
            logger.warning("취소 요청을 받았습니다. 진행 중인 작업을 마무리합니다...")
            self.cancel_event.set()
        finally:
            self._drain(executor, futures)

        results: list[TaskResult[R]] = []
        cancelled_count = 0
        for future in futures:
            if future.cancelled():
                cancelled_count += 1
                continue
            results.append(future.result())

        exec_result = ParallelExecutionResult(results=tuple(results), cancelled=self.cancel_event.is_set())
        total_time = (time.monotonic() - start_time) * 1000

        logger.debug(
            f"병렬 실행 완료: 성공 {exec_result.success_count}, 실패 {exec_result.error_count}, "
            f"취소 {cancelled_count}, 총 {total_time:.0f}ms"
        )
        return exec_result

    def _acquire_slot(self, slots: threading.BoundedSemaphore) -> bool:
        """제출 슬롯 획득 (취소되면 False)"""
        while not slots.acquire(timeout=_SLOT_POLL_INTERVAL):
            if self.cancel_event.is_set():
                return False
        if self.cancel_event.is_set():
            slots.release()
            return False
        return True

    def _drain(self, executor: ThreadPoolExecutor, futures: dict[Future[TaskResult[R]], str]) -> None:
        """워커 풀 종료 대기

        취소 상태이면 시작 전 작업을 취소하고 실행 중인 작업만 기다립니다.
        대기 중 Ctrl+C가 다시 들어오면 취소 상태로 전환하고 계속 기다립니다.
        """
        while True:
            try:
                if self.cancel_event.is_set():
                    for future in futures:
                        future.cancel()
                executor.shutdown(wait=True, cancel_futures=self.cancel_event.is_set())
                return
            except KeyboardInterrupt:
                logger.warning("취소 요청을 받았습니다. 진행 중인 작업을 마무리합니다...")
                self.cancel_event.set()

    def _execute_single(
        self,
        func: Callable[[T], R],
        item: T,
        identifier: str,
        scope: str,
        on_complete: Callable[[TaskResult[R]], None] | None,
    ) -> TaskResult[R]:
        """단일 작업 실행 (워커 스레드 내에서 호출)"""
        start_time = time.monotonic()
        try:
            result: TaskResult[R] = TaskResult(
                identifier=identifier,
                scope=scope,
                success=True,
                data=func(item),
                duration_ms=(time.monotonic() - start_time) * 1000,
            )
        except Exception as e:
            logger.error(f"작업 실행 중 예외 [{identifier}]: {e}")
            _clear_exception_chain(e)
            result = TaskResult(
                identifier=identifier,
                scope=scope,
                success=False,
                error=TaskError(
                    identifier=identifier,
                    scope=scope,
                    category=categorize_error(e),
                    error_code=get_error_code(e),
                    message=str(e),
                    original_exception=e,
                ),
                duration_ms=(time.monotonic() - start_time) * 1000,
            )

        if on_complete:
            try:
                on_complete(result)
            except Exception as e:
                logger.debug(f"on_complete 콜백 실패 [{identifier}]: {e}")
        return result
