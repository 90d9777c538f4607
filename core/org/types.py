"""
core/org/types.py - 조직 트리 타입
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

ROOT_OU_NAME = "root"


class NodeKind(Enum):
    """조직 트리 노드 종류"""

    ROOT = "ROOT"
    OU = "OU"
    ACCOUNT = "ACCOUNT"


@dataclass(frozen=True)
class OrgNode:
    """조직 트리 노드

    Attributes:
        id: 노드 ID (r-xxxx, ou-xxxx-xxxxxxxx, 12자리 계정 ID)
        name: 노드 이름 (계정은 계정 이름)
        kind: 노드 종류
        parent_id: 부모 노드 ID (ROOT는 None)
        parent_name: 부모 컨테이너 이름 (루트 바로 아래는 "root")
        status: 계정 상태 (ACTIVE, SUSPENDED 등, 계정만 해당)
    """

    id: str
    name: str
    kind: NodeKind
    parent_id: str | None = None
    parent_name: str | None = None
    status: str | None = None

    @property
    def is_account(self) -> bool:
        return self.kind is NodeKind.ACCOUNT

    @property
    def is_container(self) -> bool:
        return self.kind in (NodeKind.ROOT, NodeKind.OU)

    @property
    def ou_name(self) -> str:
        """결과 파일명에 사용되는 소속 OU 이름"""
        return self.parent_name or ROOT_OU_NAME

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.name}({self.id})"


@dataclass(frozen=True)
class OrganizationInfo:
    """Organization 기본 정보"""

    id: str
    master_account_id: str | None = None
    root_id: str | None = None
    root_name: str = ROOT_OU_NAME
