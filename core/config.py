"""
core/config.py - 전역 설정 및 실행 설정

- Settings: 불변 전역 기본값 (settings 인스턴스로 사용)
- 환경 변수 헬퍼: get_env_int, get_env_bool, get_default_region, get_default_profile
- TrampleConfig: 실행 단위 설정

TrampleConfig 우선순위 (낮음 → 높음):
    기본값 < YAML 설정 파일 < TRAMPLE_* 환경 변수 < CLI 옵션

YAML 예시:
    role_name: OrganizationAccountAccessRole
    output_dir: trample_results
    max_workers: 20
    resource_kinds: [s3, ec2, iam]
    retry:
      max_retries: 4
      base_delay: 0.5
    assume_role_rate:
      requests_per_second: 5
      burst_size: 10
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from core.exceptions import ConfigError
from core.inventory.types import ALL_RESOURCE_KINDS, ResourceKind
from core.parallel import RateLimiterConfig, RetryConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """전역 기본값 (불변)"""

    DEFAULT_REGION: str = "ap-northeast-2"
    DEFAULT_ROLE_NAME: str = "OrganizationAccountAccessRole"
    DEFAULT_OUTPUT_DIR: str = "trample_results"
    STATE_FILE_NAME: str = "trample_state.json"
    DEFAULT_PARTITION: str = "aws"

    SESSION_NAME: str = "TrampleSession"
    SESSION_DURATION_SECONDS: int = 3600

    MAX_WORKERS: int = 10
    MAX_WORKERS_LIMIT: int = 100

    API_CONNECT_TIMEOUT: int = 10
    API_TIMEOUT: int = 30
    API_RETRY_COUNT: int = 2
    API_RETRY_BASE_DELAY: float = 1.0
    API_RETRY_MAX_DELAY: float = 30.0

    ASSUME_ROLE_RPS: float = 5.0
    ASSUME_ROLE_BURST: int = 10
    ASSUME_ROLE_WAIT_TIMEOUT: float = 30.0


settings = Settings()


# =============================================================================
# 경로 / 버전
# =============================================================================


def get_project_root() -> Path:
    """프로젝트 루트 경로"""
    return Path(__file__).resolve().parent.parent


def get_version() -> str:
    """version.txt에서 버전 읽기 (없으면 0.0.0)"""
    version_file = get_project_root() / "version.txt"
    try:
        return version_file.read_text(encoding="utf-8").strip() or "0.0.0"
    except OSError:
        return "0.0.0"


# =============================================================================
# 환경 변수 헬퍼
# =============================================================================

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def get_env_bool(name: str, default: bool = False) -> bool:
    """환경 변수를 bool로 변환 (해석 불가 시 기본값)"""
    value = os.environ.get(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


def get_env_int(name: str, default: int) -> int:
    """환경 변수를 int로 변환 (해석 불가 시 기본값)"""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_default_profile() -> str | None:
    """AWS_PROFILE → AWS_DEFAULT_PROFILE 순으로 프로파일 조회"""
    return os.environ.get("AWS_PROFILE") or os.environ.get("AWS_DEFAULT_PROFILE")


def get_default_region() -> str:
    """AWS_REGION → AWS_DEFAULT_REGION → settings.DEFAULT_REGION"""
    return os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or settings.DEFAULT_REGION


# =============================================================================
# 실행 설정
# =============================================================================

ENV_PREFIX = "TRAMPLE_"

# 환경 변수 → 설정 키
_ENV_KEYS = {
    "ROLE_NAME": "role_name",
    "OUTPUT_DIR": "output_dir",
    "REGION": "region",
    "PROFILE": "profile",
    "PARTITION": "partition",
    "MAX_WORKERS": "max_workers",
    "RESOURCE_KINDS": "resource_kinds",
    "SESSION_NAME": "session_name",
    "SESSION_DURATION": "session_duration",
    "CONNECT_TIMEOUT": "connect_timeout",
    "READ_TIMEOUT": "read_timeout",
    "MAX_RETRIES": "retry.max_retries",
}

_NESTED_KEYS = {"retry", "assume_role_rate"}


@dataclass
class TrampleConfig:
    """실행 설정

    Attributes:
        role_name: 각 계정에서 전환할 역할 이름
        output_dir: 결과 파일 디렉토리
        resume: 재개할 상태 파일 경로 (None이면 새 실행)
        region: 리전 리소스(EC2/Lambda/RDS) 조회 리전
        profile: 관리 계정 AWS 프로파일
        partition: AWS 파티션 (역할 ARN 생성용)
        max_workers: 동시 처리 계정 수
        resource_kinds: 수집할 리소스 종류 (순서대로 조회)
        session_name: AssumeRole RoleSessionName
        session_duration: 자격 증명 유효 시간 (초)
        retry: 재시도 정책 (AssumeRole, Organizations 목록, 리소스 조회 공통)
        assume_role_rate: AssumeRole 전역 속도 제한
        connect_timeout / read_timeout: API 호출 단위 타임아웃 (초)
        fresh_on_corrupt: 상태 파일 손상 시 새로 시작
        verbose: DEBUG 로그 출력
    """

    role_name: str = settings.DEFAULT_ROLE_NAME
    output_dir: str = settings.DEFAULT_OUTPUT_DIR
    resume: str | None = None
    region: str | None = None
    profile: str | None = None
    partition: str = settings.DEFAULT_PARTITION
    max_workers: int = settings.MAX_WORKERS
    resource_kinds: tuple[ResourceKind, ...] = ALL_RESOURCE_KINDS
    session_name: str = settings.SESSION_NAME
    session_duration: int = settings.SESSION_DURATION_SECONDS
    retry: RetryConfig = field(
        default_factory=lambda: RetryConfig(
            max_retries=settings.API_RETRY_COUNT,
            base_delay=settings.API_RETRY_BASE_DELAY,
            max_delay=settings.API_RETRY_MAX_DELAY,
        )
    )
    assume_role_rate: RateLimiterConfig = field(
        default_factory=lambda: RateLimiterConfig(
            requests_per_second=settings.ASSUME_ROLE_RPS,
            burst_size=settings.ASSUME_ROLE_BURST,
            wait_timeout=settings.ASSUME_ROLE_WAIT_TIMEOUT,
        )
    )
    connect_timeout: int = settings.API_CONNECT_TIMEOUT
    read_timeout: int = settings.API_TIMEOUT
    fresh_on_corrupt: bool = False
    verbose: bool = False

    @property
    def state_path(self) -> Path:
        """상태 파일 경로 (--resume 미지정 시 출력 디렉토리 아래)"""
        if self.resume:
            return Path(self.resume)
        return Path(self.output_dir) / settings.STATE_FILE_NAME

    def resolve_region(self, session_region: str | None = None) -> str:
        """리전 리소스 조회 리전

        --region > 관리 계정 세션 리전 (프로파일 / AWS_REGION) > 환경 변수 / 기본값
        """
        return self.region or session_region or get_default_region()

    @property
    def is_resume(self) -> bool:
        return self.resume is not None

    @property
    def resource_kind_names(self) -> tuple[str, ...]:
        return tuple(kind.value for kind in self.resource_kinds)

    # =========================================================================
    # 로드
    # =========================================================================

    @classmethod
    def load(
        cls,
        config_path: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
        environ: dict[str, str] | None = None,
    ) -> TrampleConfig:
        """기본값 < YAML < 환경 변수 < overrides 순으로 병합

        Args:
            config_path: YAML 설정 파일 경로
            overrides: CLI 옵션 (값이 None인 항목은 무시)
            environ: 환경 변수 (None이면 os.environ)

        Raises:
            ConfigError: 설정 파일 또는 값이 올바르지 않은 경우
        """
        raw: dict[str, Any] = {}
        if config_path is not None:
            _merge(raw, load_yaml(config_path))
        _merge(raw, _from_env(os.environ if environ is None else environ))
        if overrides:
            _merge(raw, {k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TrampleConfig:
        """딕셔너리 → TrampleConfig (검증 포함)"""
        known = {f.name for f in fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ConfigError(", ".join(sorted(unknown)), "알 수 없는 설정 키입니다")

        values: dict[str, Any] = {}
        for key, value in raw.items():
            if key == "retry":
                values[key] = _build_nested(RetryConfig, key, value)
            elif key == "assume_role_rate":
                values[key] = _build_nested(RateLimiterConfig, key, value)
            elif key == "resource_kinds":
                values[key] = _parse_resource_kinds(value)
            elif key in ("max_workers", "session_duration", "connect_timeout", "read_timeout"):
                values[key] = _to_int(key, value)
            elif key in ("fresh_on_corrupt", "verbose"):
                values[key] = _to_bool(key, value)
            else:
                values[key] = None if value is None else str(value)

        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """값 범위 검증

        Raises:
            ConfigError: 범위를 벗어난 값
        """
        if not self.role_name:
            raise ConfigError("role_name", "역할 이름이 비어 있습니다")
        if not self.output_dir:
            raise ConfigError("output_dir", "출력 디렉토리가 비어 있습니다")
        if not 1 <= self.max_workers <= settings.MAX_WORKERS_LIMIT:
            raise ConfigError("max_workers", f"1 ~ {settings.MAX_WORKERS_LIMIT} 사이여야 합니다 ({self.max_workers})")
        if not self.resource_kinds:
            raise ConfigError("resource_kinds", "최소 하나의 리소스 종류가 필요합니다")
        if not 900 <= self.session_duration <= 43200:
            raise ConfigError("session_duration", f"900 ~ 43200초 사이여야 합니다 ({self.session_duration})")
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ConfigError("connect_timeout/read_timeout", "0보다 커야 합니다")
        if self.retry.max_retries < 0:
            raise ConfigError("retry.max_retries", "0 이상이어야 합니다")
        if self.retry.base_delay < 0 or self.retry.max_delay < 0:
            raise ConfigError("retry.base_delay/max_delay", "0 이상이어야 합니다")
        if self.assume_role_rate.requests_per_second <= 0 or self.assume_role_rate.burst_size < 1:
            raise ConfigError("assume_role_rate", "requests_per_second > 0, burst_size >= 1 이어야 합니다")


def load_yaml(path: str | Path) -> dict[str, Any]:
    """YAML 설정 파일 로드

    Raises:
        ConfigError: 파일을 읽을 수 없거나 최상위가 매핑이 아닌 경우
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(str(path), "설정 파일을 읽을 수 없습니다", cause=e) from e
    except yaml.YAMLError as e:
        raise ConfigError(str(path), "YAML 파싱 실패", cause=e) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(str(path), "최상위는 매핑이어야 합니다")

    logger.debug(f"설정 파일 로드: {path}")
    return data


def _from_env(environ: dict[str, str]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for suffix, key in _ENV_KEYS.items():
        value = environ.get(ENV_PREFIX + suffix)
        if value is None or value == "":
            continue
        if "." in key:
            parent, child = key.split(".", 1)
            result.setdefault(parent, {})[child] = value
        else:
            result[key] = value
    return result


def _merge(base: dict[str, Any], other: dict[str, Any]) -> None:
    for key, value in other.items():
        if key in _NESTED_KEYS and isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = {**base[key], **value}
        else:
            base[key] = value


def _to_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(key, f"정수가 필요합니다 ({value!r})")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(key, f"정수가 필요합니다 ({value!r})", cause=e) from e


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(key, f"true/false 값이 필요합니다 ({value!r})")


def _build_nested(cls, key: str, value: Any):
    if isinstance(value, (RetryConfig, RateLimiterConfig)):
        return value
    if not isinstance(value, dict):
        raise ConfigError(key, "매핑이어야 합니다")

    allowed = {f.name: f for f in fields(cls)}
    unknown = set(value) - set(allowed)
    if unknown:
        raise ConfigError(f"{key}.{sorted(unknown)[0]}", "알 수 없는 설정 키입니다")

    kwargs: dict[str, Any] = {}
    for name, raw in value.items():
        default = allowed[name].default
        try:
            if isinstance(default, bool):
                kwargs[name] = _to_bool(f"{key}.{name}", raw)
            elif isinstance(default, int):
                kwargs[name] = int(raw)
            else:
                kwargs[name] = float(raw)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{key}.{name}", f"숫자가 필요합니다 ({raw!r})", cause=e) from e
    try:
        return cls(**kwargs)
    except ValueError as e:
        raise ConfigError(key, str(e), cause=e) from e


def _parse_resource_kinds(value: Any) -> tuple[ResourceKind, ...]:
    if isinstance(value, str):
        items = [v for v in value.split(",") if v.strip()]
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise ConfigError("resource_kinds", "목록 또는 쉼표로 구분된 문자열이어야 합니다")

    kinds: list[ResourceKind] = []
    for item in items:
        try:
            kind = item if isinstance(item, ResourceKind) else ResourceKind.parse(str(item))
        except ValueError as e:
            raise ConfigError("resource_kinds", str(e), cause=e) from e
        if kind not in kinds:
            kinds.append(kind)
    return tuple(kinds)
