"""
core/org/client.py - AWS Organizations API 어댑터

조직 탐색에 필요한 Organizations 호출만 감싸고 예외를 도메인 예외로 변환합니다.

- describe_organization / list_roots 실패: OrgAccessError (치명적)
- list_*_for_parent 실패: ListingError (해당 목록만 스킵)

목록 조회는 paginator로 모든 페이지를 병합하며, 쓰로틀링/네트워크 오류는
RetryConfig 정책으로 재시도합니다.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import ListingError, OrgAccessError
from core.parallel import RetryConfig, TokenBucketRateLimiter, call_with_retry, get_client, get_error_code

from .types import NodeKind, OrganizationInfo, OrgNode

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)


class OrganizationsClient:
    """Organizations 조회 클라이언트

    Args:
        session: 관리 계정 boto3 Session
        retry_config: 목록 조회 재시도 설정
        rate_limiter: Organizations API 속도 제한 (None이면 제한 없음)
        cancel_event: 재시도 대기 중단용 취소 이벤트
    """

    def __init__(
        self,
        session: boto3.Session,
        retry_config: RetryConfig | None = None,
        rate_limiter: TokenBucketRateLimiter | None = None,
        cancel_event: threading.Event | None = None,
        connect_timeout: int = 10,
        read_timeout: int = 30,
    ):
        self._client = get_client(
            session,
            "organizations",
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
        )
        self._retry_config = retry_config
        self._rate_limiter = rate_limiter
        self._cancel_event = cancel_event

    def _call(self, func, label: str):
        def attempt():
            if self._rate_limiter is not None:
                self._rate_limiter.acquire()
            return func()

        return call_with_retry(attempt, self._retry_config, label=label, cancel_event=self._cancel_event)

    # =========================================================================
    # 조직 정보 (실패 시 치명적)
    # =========================================================================

    def describe_organization(self) -> OrganizationInfo:
        """Organization 정보 조회

        Raises:
            OrgAccessError: Organizations 접근 불가
        """
        try:
            response = self._call(self._client.describe_organization, "organizations/describe_organization")
        except (ClientError, BotoCoreError) as e:
            raise OrgAccessError("describe_organization", cause=e) from e

        org = response["Organization"]
        info = OrganizationInfo(id=org["Id"], master_account_id=org.get("MasterAccountId"))
        logger.info(f"Organization 확인: {info.id}")
        return info

    def get_root(self) -> OrgNode:
        """첫 번째 루트 노드 조회

        Raises:
            OrgAccessError: 루트 조회 실패 또는 루트 없음
        """
        try:
            response = self._call(self._client.list_roots, "organizations/list_roots")
        except (ClientError, BotoCoreError) as e:
            raise OrgAccessError("list_roots", cause=e) from e

        roots = response.get("Roots", [])
        if not roots:
            raise OrgAccessError("list_roots")

        root = roots[0]
        node = OrgNode(id=root["Id"], name=root.get("Name") or "root", kind=NodeKind.ROOT)
        logger.info(f"루트 확인: {node.id}")
        return node

    # =========================================================================
    # 하위 목록 (실패 시 해당 목록만 스킵)
    # =========================================================================

    def _paginate(self, operation: str, result_key: str, parent_id: str) -> list[dict[str, Any]]:
        paginator = self._client.get_paginator(operation)

        def fetch_all() -> list[dict[str, Any]]:
            items: list[dict[str, Any]] = []
            for page in paginator.paginate(ParentId=parent_id):
                items.extend(page.get(result_key, []))
            return items

        try:
            return self._call(fetch_all, f"{parent_id}/{operation}")
        except ClientError as e:
            raise ListingError.from_client_error(parent_id, operation, e) from e
        except BotoCoreError as e:
            raise ListingError(parent_id, operation, error_code=get_error_code(e), cause=e) from e

    def list_ous_for_parent(self, parent: OrgNode) -> list[OrgNode]:
        """직속 하위 OU 목록 (ID 순 정렬)

        Raises:
            ListingError: 목록 조회 실패
        """
        raw = self._paginate("list_organizational_units_for_parent", "OrganizationalUnits", parent.id)
        nodes = [
            OrgNode(
                id=ou["Id"],
                name=ou.get("Name") or ou["Id"],
                kind=NodeKind.OU,
                parent_id=parent.id,
                parent_name=parent.name if parent.kind is NodeKind.OU else None,
            )
            for ou in raw
            if ou.get("Id")
        ]
        return sorted(nodes, key=lambda n: n.id)

    def list_accounts_for_parent(self, parent: OrgNode) -> list[OrgNode]:
        """직속 계정 목록 (ID 순 정렬)

        계정의 parent_name은 소속 OU 이름이며, 루트 직속 계정은 "root"입니다.

        Raises:
            ListingError: 목록 조회 실패
        """
        raw = self._paginate("list_accounts_for_parent", "Accounts", parent.id)
        container_name = parent.name if parent.kind is NodeKind.OU else None
        nodes = [
            OrgNode(
                id=account["Id"],
                name=account.get("Name") or account["Id"],
                kind=NodeKind.ACCOUNT,
                parent_id=parent.id,
                parent_name=container_name,
                status=account.get("Status"),
            )
            for account in raw
            if account.get("Id")
        ]
        return sorted(nodes, key=lambda n: n.id)
