"""
core/org/walker.py - 조직 트리 탐색기

루트부터 깊이 우선으로 OU와 계정을 발견하는 지연(lazy) 제너레이터입니다.

탐색 순서 (트리가 같으면 항상 동일):
    1. ROOT 노드
    2. 각 컨테이너(ROOT/OU)마다 직속 계정 (ID 순) → 하위 OU (ID 순)로 하강

- 재귀 대신 명시적 스택 + 방문 집합을 사용하므로 깊거나 넓은 조직에서도
  호출 스택이 늘지 않고, API가 같은 ID를 두 번 반환해도 한 번만 내보냅니다.
- 컨테이너의 하위 목록 조회가 모두 끝난 뒤에 해당 컨테이너의 계정을 내보냅니다.
- 실행 상태에서 모든 리소스 종류가 완료된 계정은 내보내지 않습니다.
- 목록 조회 실패(ListingError)는 기록 후 형제 노드 탐색을 계속합니다.

Example:
    walker = OrgTreeWalker(org_client, store, resource_kinds=["s3", "ec2"])
    for node in walker.walk(root):
        if node.is_account:
            dispatch(node)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING

from core.exceptions import ListingError

from .types import ROOT_OU_NAME, NodeKind, OrgNode

if TYPE_CHECKING:
    from core.state import RunStateStore

    from .client import OrganizationsClient

logger = logging.getLogger(__name__)


class OrgTreeWalker:
    """조직 트리 탐색기

    Attributes:
        listing_errors: 실패한 목록 조회 (ListingError)
        skipped_accounts: 이미 완료되어 건너뛴 계정 수
        accounts_found: 내보낸 계정 수
        containers_visited: 하위 목록 조회가 끝난 컨테이너 수
    """

    def __init__(
        self,
        org_client: OrganizationsClient,
        state: RunStateStore | None = None,
        resource_kinds: Sequence[str] = (),
    ):
        self._org = org_client
        self._state = state
        self._resource_kinds = tuple(resource_kinds)

        self.listing_errors: list[ListingError] = []
        self.skipped_accounts = 0
        self.accounts_found = 0
        self.containers_visited = 0

    @property
    def listing_failures(self) -> int:
        return len(self.listing_errors)

    def _is_account_complete(self, account_id: str) -> bool:
        if self._state is None or not self._resource_kinds:
            return False
        return self._state.is_account_complete(account_id, self._resource_kinds)

    def _list_children(self, container: OrgNode) -> tuple[list[OrgNode], list[OrgNode], bool]:
        """(계정, 하위 OU, 모두 성공 여부)

        한쪽 목록 조회가 실패해도 다른 쪽 결과는 사용합니다.
        """
        complete = True

        try:
            child_ous = self._org.list_ous_for_parent(container)
        except ListingError as e:
            logger.warning(f"[{container.id}] 하위 OU 조회 실패, 건너뜀: {e}")
            self.listing_errors.append(e)
            child_ous = []
            complete = False

        try:
            accounts = self._org.list_accounts_for_parent(container)
        except ListingError as e:
            logger.warning(f"[{container.id}] 계정 목록 조회 실패, 건너뜀: {e}")
            self.listing_errors.append(e)
            accounts = []
            complete = False

        return accounts, child_ous, complete

    def walk(self, root: OrgNode | str) -> Iterator[OrgNode]:
        """깊이 우선 탐색

        Args:
            root: 탐색 시작 노드 (OrganizationsClient.get_root() 결과) 또는 루트 ID

        Yields:
            ROOT/OU/ACCOUNT 노드 (각 ID는 한 번만)
        """
        if isinstance(root, str):
            root = OrgNode(id=root, name=ROOT_OU_NAME, kind=NodeKind.ROOT)

        visited: set[str] = set()
        stack: list[OrgNode] = [root]

        while stack:
            container = stack.pop()
            if container.id in visited:
                logger.debug(f"이미 방문한 컨테이너, 건너뜀: {container}")
                continue
            visited.add(container.id)

            if container.kind is NodeKind.OU:
                logger.info(f"OU 탐색: {container.name} ({container.id})")
            yield container

            accounts, child_ous, complete = self._list_children(container)
            if complete:
                self.containers_visited += 1
                if self._state is not None:
                    self._state.mark_ou_visited(container.id)

            for account in accounts:
                if account.id in visited:
                    logger.debug(f"[{account.id}] 중복 보고된 계정, 건너뜀")
                    continue
                visited.add(account.id)

                if self._is_account_complete(account.id):
                    self.skipped_accounts += 1
                    logger.debug(f"[{account.id}] 모든 리소스 종류 완료, 건너뜀")
                    continue

                self.accounts_found += 1
                yield account

            # 작은 ID부터 꺼내도록 역순으로 push
            for ou in reversed(child_ous):
                if ou.id not in visited:
                    stack.append(ou)

        logger.info(
            f"조직 탐색 완료: 계정 {self.accounts_found}개, 완료로 건너뜀 {self.skipped_accounts}개, "
            f"목록 조회 실패 {self.listing_failures}건"
        )
