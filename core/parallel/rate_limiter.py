"""
core/parallel/rate_limiter.py - 토큰 버킷 Rate Limiter

여러 워커 스레드가 공유하는 API 호출 속도 제한기입니다.
AssumeRole처럼 계정 전체에 걸쳐 호출 한도가 있는 API를
전역적으로 조절하는 데 사용합니다.

Example:
    limiter = get_rate_limiter("sts")
    if limiter.acquire():
        sts.assume_role(...)
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class RateLimiterConfig:
    """Rate limiter 설정

    Attributes:
        requests_per_second: 초당 토큰 보충 속도
        burst_size: 버킷 최대 토큰 수 (순간 허용량)
        wait_timeout: acquire() 최대 대기 시간 (초)
    """

    requests_per_second: float = 10.0
    burst_size: int = 20
    wait_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.requests_per_second <= 0:
            raise ValueError(f"requests_per_second must be > 0 (got {self.requests_per_second})")
        if self.burst_size < 1:
            raise ValueError(f"burst_size must be >= 1 (got {self.burst_size})")


# 서비스별 기본 Rate Limit
SERVICE_RATE_LIMITS: dict[str, RateLimiterConfig] = {
    "sts": RateLimiterConfig(requests_per_second=5.0, burst_size=10),
    "organizations": RateLimiterConfig(requests_per_second=2.0, burst_size=5),
}


class TokenBucketRateLimiter:
    """스레드 세이프 토큰 버킷

    생성 시 버킷은 burst_size만큼 가득 찬 상태이며,
    requests_per_second 속도로 burst_size까지 보충됩니다.
    """

    def __init__(self, config: RateLimiterConfig | None = None):
        self.config = config or RateLimiterConfig()
        self._tokens = float(self.config.burst_size)
        self._last_refill = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._last_refill = now
        self._tokens = min(
            float(self.config.burst_size),
            self._tokens + elapsed * self.config.requests_per_second,
        )

    def acquire(self, tokens: int = 1, timeout: float | None = None) -> bool:
        """토큰을 획득할 때까지 대기

        Args:
            tokens: 필요한 토큰 수
            timeout: 최대 대기 시간 (None이면 config.wait_timeout)

        Returns:
            제한 시간 내 획득하면 True, 타임아웃이면 False
        """
        wait_timeout = self.config.wait_timeout if timeout is None else timeout
        deadline = time.monotonic() + wait_timeout

        while True:
            with self._lock:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    return True
                shortage = tokens - self._tokens
                wait = shortage / self.config.requests_per_second

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.debug(f"Rate limiter 대기 타임아웃 ({wait_timeout:.1f}초)")
                return False
            time.sleep(min(wait, remaining, 0.5))


_limiters: dict[str, TokenBucketRateLimiter] = {}
_limiters_lock = threading.Lock()


def get_rate_limiter(name: str, config: RateLimiterConfig | None = None) -> TokenBucketRateLimiter:
    """이름별 공유 Rate limiter 반환 (최초 호출 시 생성)

    Args:
        name: 서비스 이름 (예: "sts")
        config: 최초 생성 시 사용할 설정 (None이면 SERVICE_RATE_LIMITS, 없으면 RateLimiterConfig 기본값)
    """
    with _limiters_lock:
        limiter = _limiters.get(name)
        if limiter is None:
            limiter_config = config or SERVICE_RATE_LIMITS.get(name) or RateLimiterConfig()
            limiter = TokenBucketRateLimiter(limiter_config)
            _limiters[name] = limiter
        return limiter


def reset_rate_limiters() -> None:
    """공유 Rate limiter 전체 초기화 (테스트용)"""
    with _limiters_lock:
        _limiters.clear()
