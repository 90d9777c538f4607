"""
core/parallel - 병렬 처리 모듈

조직 내 여러 계정을 병렬로 안전하게 처리합니다.

주요 구성 요소:
- AccountExecutor: 제한된 워커 풀 + 취소 가능한 계정 병렬 실행기
- call_with_retry / RetryConfig: 지수 백오프 + 지터 재시도
- TokenBucketRateLimiter: AssumeRole 등 API 쓰로틀링 방지
- ErrorCollector: 스레드 세이프 에러 수집기
- get_client: 호출 단위 타임아웃이 적용된 boto3 client

Example:
    from core.parallel import AccountExecutor, ParallelConfig

    executor = AccountExecutor(ParallelConfig(max_workers=10), cancel_event)
    result = executor.execute(accounts, process_account, identify=lambda n: n.id)

    if result.error_count > 0:
        print(result.get_error_summary())
"""

from .client import get_client
from .decorators import RetryConfig, call_with_retry, categorize_error, get_error_code, is_retryable, with_retry
from .errors import CollectedError, ErrorCollector, ErrorSeverity
from .executor import AccountExecutor, ParallelConfig
from .rate_limiter import (
    RateLimiterConfig,
    TokenBucketRateLimiter,
    get_rate_limiter,
    reset_rate_limiters,
)
from .types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult

__all__: list[str] = [
    # Executor
    "AccountExecutor",
    "ParallelConfig",
    # Client
    "get_client",
    # Retry
    "RetryConfig",
    "call_with_retry",
    "with_retry",
    "categorize_error",
    "get_error_code",
    "is_retryable",
    # Error handling
    "ErrorCollector",
    "ErrorSeverity",
    "CollectedError",
    # Rate Limiter
    "TokenBucketRateLimiter",
    "RateLimiterConfig",
    "get_rate_limiter",
    "reset_rate_limiters",
    # Types
    "ErrorCategory",
    "TaskError",
    "TaskResult",
    "ParallelExecutionResult",
]
