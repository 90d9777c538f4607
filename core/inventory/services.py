"""
core/inventory/services.py - 리소스 종류별 조회 함수

각 함수는 계정 한정 boto3 Session을 받아 모든 페이지를 병합한
AWS CLI 출력 형태의 payload를 반환합니다 (ResponseMetadata 제외).

    s3      s3.list_buckets               → {"Buckets": [...], "Owner": {...}}
    ec2     ec2.describe_instances        → {"Reservations": [...]}
    iam     iam.list_users + list_roles   → {"Users": [...], "Roles": [...]}
    lambda  lambda.list_functions         → {"Functions": [...]}
    rds     rds.describe_db_instances     → {"DBInstances": [...]}

botocore 예외는 그대로 전파되며 분류/재시도는 ResourceCollector가 담당합니다.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from core.parallel import get_client

from .types import ResourceKind

logger = logging.getLogger(__name__)

Fetcher = Callable[..., dict[str, Any]]


def _paginate_merge(client, operation: str, result_key: str, **kwargs) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    paginator = client.get_paginator(operation)
    for page in paginator.paginate(**kwargs):
        items.extend(page.get(result_key, []))
    return items


def list_buckets(session, region: str | None = None, **client_kwargs) -> dict[str, Any]:
    """S3 버킷 목록 (전역 API, 단일 호출)"""
    s3 = get_client(session, "s3", region_name=region, **client_kwargs)
    response = s3.list_buckets()
    payload: dict[str, Any] = {"Buckets": response.get("Buckets", [])}
    if "Owner" in response:
        payload["Owner"] = response["Owner"]
    return payload


def describe_instances(session, region: str | None = None, **client_kwargs) -> dict[str, Any]:
    """EC2 인스턴스 목록"""
    ec2 = get_client(session, "ec2", region_name=region, **client_kwargs)
    return {"Reservations": _paginate_merge(ec2, "describe_instances", "Reservations")}


def list_principals(session, region: str | None = None, **client_kwargs) -> dict[str, Any]:
    """IAM 사용자 + 역할 목록"""
    iam = get_client(session, "iam", region_name=region, **client_kwargs)
    return {
        "Users": _paginate_merge(iam, "list_users", "Users"),
        "Roles": _paginate_merge(iam, "list_roles", "Roles"),
    }


def list_functions(session, region: str | None = None, **client_kwargs) -> dict[str, Any]:
    """Lambda 함수 목록"""
    lambda_client = get_client(session, "lambda", region_name=region, **client_kwargs)
    return {"Functions": _paginate_merge(lambda_client, "list_functions", "Functions")}


def describe_db_instances(session, region: str | None = None, **client_kwargs) -> dict[str, Any]:
    """RDS DB 인스턴스 목록"""
    rds = get_client(session, "rds", region_name=region, **client_kwargs)
    return {"DBInstances": _paginate_merge(rds, "describe_db_instances", "DBInstances")}


# 리소스 종류 → (조회 함수, 로그/에러용 API 이름)
KIND_FETCHERS: dict[ResourceKind, tuple[Fetcher, str]] = {
    ResourceKind.S3: (list_buckets, "list_buckets"),
    ResourceKind.EC2: (describe_instances, "describe_instances"),
    ResourceKind.IAM: (list_principals, "list_users/list_roles"),
    ResourceKind.LAMBDA: (list_functions, "list_functions"),
    ResourceKind.RDS: (describe_db_instances, "describe_db_instances"),
}


def has_resources(payload: dict[str, Any]) -> bool:
    """최상위 목록 값 중 하나라도 항목이 있으면 True"""
    return any(isinstance(value, list) and value for value in payload.values())
