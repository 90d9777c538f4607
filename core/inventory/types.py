"""
core/inventory/types.py - 리소스 인벤토리 타입
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ResourceKind(str, Enum):
    """수집 대상 리소스 종류 (결과 파일명 접미사)"""

    S3 = "s3"
    EC2 = "ec2"
    IAM = "iam"
    LAMBDA = "lambda"
    RDS = "rds"

    @classmethod
    def parse(cls, value: str) -> ResourceKind:
        """문자열을 ResourceKind로 변환 (대소문자 무시)

        Raises:
            ValueError: 알 수 없는 리소스 종류
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise ValueError(f"알 수 없는 리소스 종류: {value} (사용 가능: {valid})") from None


# 기본 수집 순서
ALL_RESOURCE_KINDS: tuple[ResourceKind, ...] = tuple(ResourceKind)


@dataclass(frozen=True)
class ResourceRecord:
    """(계정, 리소스 종류) 한 건의 조회 결과

    payload는 AWS CLI 출력과 같은 형태의 원본 응답입니다.
    """

    account_id: str
    ou_name: str
    org_id: str
    resource_kind: ResourceKind
    payload: dict[str, Any]
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
